"""Main CancerClassifier class wrapping a pretrained TorchScript model."""

from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np
import torch
import torch.nn.functional as F
from torch import nn

from .config import OncoLiteConfig
from .constants import INPUT_SIZE
from .errors import ModelLoadError, PredictionError
from .preprocess import ImageInput, preprocess
from .taxonomy import CLASS_LABELS, check_label_table
from .utils import format_file_size, get_model_path, setup_logger


class CancerClassifier:
    """Main multi-cancer classifier class."""

    def __init__(
        self,
        model: nn.Module,
        device: Optional[str] = None,
        labels: Sequence[str] = CLASS_LABELS,
        input_size: int = INPUT_SIZE,
        channels_last: bool = False,
        apply_softmax: bool = False
    ):
        """
        Initialize classifier.

        Args:
            model: PyTorch or TorchScript model
            device: Device to run on ('cpu', 'cuda', or None for auto)
            labels: Class label table, in training order
            input_size: Spatial size expected by the model
            channels_last: Feed NHWC tensors (models exported from Keras)
            apply_softmax: Treat model outputs as logits and apply softmax
        """
        self.model = model
        self.device = device or ("cuda" if torch.cuda.is_available() else "cpu")
        self.model.to(self.device)
        self.model.eval()

        self.labels = tuple(labels)
        self.input_size = input_size
        self.channels_last = channels_last
        self.apply_softmax = apply_softmax
        self.logger = setup_logger()

    @classmethod
    def from_pretrained(
        cls,
        location: str,
        cache_dir: Optional[Path] = None,
        device: Optional[str] = None,
        **kwargs
    ) -> "CancerClassifier":
        """
        Load a pretrained TorchScript classifier.

        Args:
            location: Local path, http(s) URL or hf://<repo_id>/<filename>
            cache_dir: Download cache directory
            device: Device to run on

        Returns:
            CancerClassifier instance

        Raises:
            ModelLoadError: If the artifact cannot be fetched or loaded
        """
        logger = setup_logger()

        model_path = get_model_path(location, cache_dir=cache_dir)

        try:
            model = torch.jit.load(str(model_path), map_location="cpu")
        except (RuntimeError, ValueError, OSError) as e:
            raise ModelLoadError(f"Failed to load model from {model_path}: {e}") from e

        logger.info(
            f"Loaded model from {model_path} ({format_file_size(model_path.stat().st_size)})"
        )
        return cls(model, device=device, **kwargs)

    @classmethod
    def from_config(cls, config: OncoLiteConfig) -> "CancerClassifier":
        """Load the classifier described by ``config``."""
        return cls.from_pretrained(
            config.model_location,
            cache_dir=config.cache_dir,
            device=config.device,
            input_size=config.input_size,
            channels_last=config.channels_last,
            apply_softmax=config.apply_softmax,
        )

    def predict(self, tensor: torch.Tensor) -> np.ndarray:
        """
        Run the model on a preprocessed tensor.

        Args:
            tensor: Tensor with a leading batch dimension of size 1

        Returns:
            Probability vector with one score per class label

        Raises:
            PredictionError: If inference fails
            LabelTableMismatchError: If the output length differs from the label table
        """
        try:
            with torch.no_grad():
                output = self.model(tensor.to(self.device))
                if isinstance(output, (list, tuple)):
                    output = output[0]
                if self.apply_softmax:
                    output = F.softmax(output, dim=-1)
                probs = output.detach().cpu().float().numpy()
        except Exception as e:
            raise PredictionError(f"Inference failed: {e}") from e

        probs = probs.reshape(probs.shape[0], -1)[0] if probs.ndim > 1 else probs
        check_label_table(probs.shape[0], self.labels)

        self.logger.debug(f"Raw predictions: {np.array2string(probs, precision=4)}")
        return probs

    def predict_image(self, image: Union[ImageInput, torch.Tensor]) -> np.ndarray:
        """
        Preprocess an image and return its probability vector.

        Args:
            image: Input image (path, bytes, PIL image, array or tensor)

        Returns:
            Probability vector with one score per class label
        """
        tensor = preprocess(image, size=self.input_size, channels_last=self.channels_last)
        return self.predict(tensor)

    def predict_batch(self, images: List[Union[ImageInput, torch.Tensor]]) -> List[np.ndarray]:
        """
        Predict probability vectors for a list of images.

        Args:
            images: List of input images

        Returns:
            List of probability vectors
        """
        results = []

        for img in images:
            results.append(self.predict_image(img))

        return results

    @property
    def num_classes(self) -> int:
        return len(self.labels)

