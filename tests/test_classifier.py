"""Tests for the CancerClassifier wrapper."""

import numpy as np
import pytest
import torch
from torch import nn

from conftest import TinyNet, create_test_image
from oncolite import CancerClassifier, CLASS_LABELS
from oncolite.config import OncoLiteConfig
from oncolite.errors import LabelTableMismatchError, ModelLoadError, PredictionError


def test_from_pretrained_local_file(scripted_model):
    """Test classifier initialization from a TorchScript file."""
    classifier = CancerClassifier.from_pretrained(str(scripted_model), device="cpu")

    assert classifier.device == "cpu"
    assert classifier.num_classes == len(CLASS_LABELS)
    assert classifier.labels == CLASS_LABELS


def test_from_config(scripted_model, tmp_path):
    config = OncoLiteConfig(model_location=str(scripted_model), cache_dir=tmp_path, device="cpu")

    classifier = CancerClassifier.from_config(config)

    assert classifier.input_size == 224
    assert classifier.channels_last is False


def test_missing_artifact_raises_model_load_error(tmp_path):
    with pytest.raises(ModelLoadError):
        CancerClassifier.from_pretrained(str(tmp_path / "missing.pt"))


def test_corrupt_artifact_raises_model_load_error(tmp_path):
    bad = tmp_path / "bad.pt"
    bad.write_bytes(b"definitely not torchscript")

    with pytest.raises(ModelLoadError):
        CancerClassifier.from_pretrained(str(bad))


def test_predict_returns_probability_vector(scripted_model):
    """Test prediction on a preprocessed tensor."""
    classifier = CancerClassifier.from_pretrained(str(scripted_model), device="cpu")

    probs = classifier.predict(torch.rand(1, 3, 224, 224))

    assert isinstance(probs, np.ndarray)
    assert probs.shape == (len(CLASS_LABELS),)
    assert abs(float(probs.sum()) - 1.0) < 1e-4
    assert ((probs >= 0.0) & (probs <= 1.0)).all()


def test_predict_image_with_pil_image(scripted_model):
    classifier = CancerClassifier.from_pretrained(str(scripted_model), device="cpu")

    probs = classifier.predict_image(create_test_image(size=(320, 200)))

    assert probs.shape == (len(CLASS_LABELS),)


def test_predict_image_with_file_path(scripted_model, sample_image):
    classifier = CancerClassifier.from_pretrained(str(scripted_model), device="cpu")

    probs = classifier.predict_image(sample_image)

    assert probs.shape == (len(CLASS_LABELS),)


def test_predict_batch(scripted_model):
    classifier = CancerClassifier.from_pretrained(str(scripted_model), device="cpu")

    results = classifier.predict_batch([create_test_image() for _ in range(3)])

    assert isinstance(results, list)
    assert len(results) == 3
    for probs in results:
        assert probs.shape == (len(CLASS_LABELS),)


def test_apply_softmax_for_logit_models():
    """Logit outputs are turned into probabilities when asked."""
    model = nn.Sequential(nn.AdaptiveAvgPool2d(1), nn.Flatten(), nn.Linear(3, len(CLASS_LABELS)))
    classifier = CancerClassifier(model, device="cpu", apply_softmax=True)

    probs = classifier.predict_image(create_test_image())

    assert abs(float(probs.sum()) - 1.0) < 1e-4


def test_output_length_mismatch_is_rejected():
    """A model with the wrong number of outputs must not be silently mislabelled."""
    classifier = CancerClassifier(TinyNet(num_classes=5), device="cpu")

    with pytest.raises(LabelTableMismatchError):
        classifier.predict_image(create_test_image())


def test_runtime_failure_raises_prediction_error():
    """Feeding NHWC to an NCHW model fails inside the model."""
    classifier = CancerClassifier(
        nn.Conv2d(3, 4, 3),
        device="cpu",
        channels_last=True,
    )

    with pytest.raises(PredictionError):
        classifier.predict_image(create_test_image())
