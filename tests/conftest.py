"""Shared fixtures for OncoLite tests."""

import io

import numpy as np
import pytest
import torch
from PIL import Image
from torch import nn

from oncolite.config import OncoLiteConfig
from oncolite.errors import PredictionError
from oncolite.taxonomy import CLASS_LABELS, NUM_CLASSES


def make_probs(winner: int = 0, top: float = 0.7, runner_up: int = None, second: float = 0.2) -> np.ndarray:
    """Build a 26-class probability vector with a chosen maximum."""
    probs = np.zeros(NUM_CLASSES, dtype=np.float32)
    rest = 1.0 - top
    if runner_up is not None:
        probs[runner_up] = second
        rest -= second
    others = [i for i in range(NUM_CLASSES) if i not in (winner, runner_up)]
    probs[others] = rest / len(others)
    probs[winner] = top
    return probs


def create_test_image(size=(224, 224), color=(128, 128, 128)):
    """Create a test image."""
    return Image.new('RGB', size, color)


def image_bytes(size=(64, 48), color=(200, 30, 30), fmt="PNG") -> bytes:
    buf = io.BytesIO()
    create_test_image(size, color).save(buf, fmt)
    return buf.getvalue()


class TinyNet(nn.Module):
    """Average colour -> linear -> softmax; small enough to script in tests."""

    def __init__(self, num_classes: int = NUM_CLASSES):
        super().__init__()
        self.pool = nn.AdaptiveAvgPool2d(1)
        self.fc = nn.Linear(3, num_classes)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return torch.softmax(self.fc(self.pool(x).flatten(1)), dim=1)


class FakeClassifier:
    """Stands in for CancerClassifier in session and server tests."""

    def __init__(self, probs=None, fail: bool = False):
        self.labels = CLASS_LABELS
        self.probs = make_probs(4, 0.6, 5, 0.3) if probs is None else probs
        self.fail = fail
        self.calls = 0

    def predict_image(self, image):
        self.calls += 1
        if self.fail:
            raise PredictionError("boom")
        return self.probs


@pytest.fixture
def scripted_model(tmp_path):
    """A TorchScript artifact with 26 outputs saved to disk."""
    torch.manual_seed(0)
    path = tmp_path / "model.pt"
    torch.jit.script(TinyNet()).save(str(path))
    return path


@pytest.fixture
def config(tmp_path):
    return OncoLiteConfig(model_location="unused.pt", cache_dir=tmp_path / "cache", device="cpu")


@pytest.fixture
def sample_image(tmp_path):
    """A temporary JPEG on disk."""
    path = tmp_path / "sample.jpg"
    create_test_image(color=(255, 0, 0)).save(path, 'JPEG')
    return path
