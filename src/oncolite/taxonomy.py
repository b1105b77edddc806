"""Cancer taxonomy and label definitions."""

from typing import Dict, Sequence, Tuple

from .errors import LabelTableMismatchError

# Canonical class labels, in the exact order the classifier was trained with
CLASS_LABELS: Tuple[str, ...] = (
    "Acute Lymphoblastic Leukemia Benign",
    "Acute Lymphoblastic Leukemia Early",
    "Acute Lymphoblastic Leukemia Pre",
    "Acute Lymphoblastic Leukemia Pro",
    "Brain Glioma",
    "Brain Meningioma",
    "Brain Tumor",
    "Breast Benign",
    "Breast Malignant",
    "Cervix Dyskeratotic",
    "Cervix Koilocytotic",
    "Cervix Metaplastic",
    "Cervix Parabasal",
    "Cervix Superficial Intermediate",
    "Colon Adenocarcinoma",
    "Colon Benign Tissue",
    "Kidney Normal",
    "Kidney Tumor",
    "Lung Adenocarcinoma",
    "Lung Benign Tissue",
    "Lung Squamous Cell Carcinoma",
    "Chronic Lymphocytic Leukemia",
    "Follicular Lymphoma",
    "Mantle Cell Lymphoma",
    "Oral Normal",
    "Oral Squamous Cell Carcinoma",
)

NUM_CLASSES = len(CLASS_LABELS)

# Organ group for each label prefix
ORGAN_GROUPS: Dict[str, str] = {
    "Acute Lymphoblastic Leukemia": "Blood",
    "Chronic Lymphocytic Leukemia": "Lymphoma",
    "Follicular Lymphoma": "Lymphoma",
    "Mantle Cell Lymphoma": "Lymphoma",
    "Brain": "Brain",
    "Breast": "Breast",
    "Cervix": "Cervix",
    "Colon": "Colon",
    "Kidney": "Kidney",
    "Lung": "Lung",
    "Oral": "Oral",
}

# Create label to index mapping
LABEL_TO_IDX: Dict[str, int] = {label: idx for idx, label in enumerate(CLASS_LABELS)}


def organ_of(label: str) -> str:
    """Return the organ group a label belongs to, or "Unknown"."""
    for prefix, organ in ORGAN_GROUPS.items():
        if label.startswith(prefix):
            return organ
    return "Unknown"


def check_label_table(num_scores: int, labels: Sequence[str] = CLASS_LABELS) -> None:
    """Raise if a score vector of ``num_scores`` cannot be named by ``labels``."""
    if num_scores != len(labels):
        raise LabelTableMismatchError(
            f"Model produced {num_scores} scores but the label table has {len(labels)} entries"
        )
