"""Constants for OncoLite package."""

from .taxonomy import CLASS_LABELS

# Spatial size the classifier expects
INPUT_SIZE = 224

# Number of entries in the ranked list
TOP_K = 3

# Stable default model artifact
DEFAULT_MODEL_LOCATION = "hf://oncolite/multi-cancer-classifier/model.pt"

# View controls
ZOOM_STEP = 0.1
MIN_ZOOM = 0.1
ROTATE_STEP = 90

# Result area messages
PREDICTING_TEXT = "Predicting..."
PREDICTION_FAILED_TEXT = "Error making prediction. Try again."

# Report
REPORT_TITLE = "Multi-Cancer Classification Result"
REPORT_FILENAME = "multi-cancer-prediction-result.pdf"

# CSV header for structured output
CSV_HEADER = ["image", "predicted_label", "confidence"] + list(CLASS_LABELS)
