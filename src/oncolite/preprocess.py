"""Image loading and preprocessing utilities."""

import base64
import binascii
import io
from pathlib import Path
from typing import Optional, Union

import numpy as np
import torch
from PIL import Image, UnidentifiedImageError
from torchvision import transforms
from torchvision.transforms import InterpolationMode

from .constants import INPUT_SIZE
from .errors import ImageDecodeError

ImageInput = Union[str, Path, bytes, Image.Image, np.ndarray]


def _decode_data_url(data: str) -> bytes:
    header, _, payload = data.partition(",")
    if ";base64" not in header:
        raise ImageDecodeError("Only base64 data URLs are supported")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Malformed data URL: {e}") from e


def load_image(x: ImageInput) -> Image.Image:
    """Load image from various input types and return PIL Image."""
    if isinstance(x, str) and x.startswith("data:"):
        return decode_upload(_decode_data_url(x))
    elif isinstance(x, (str, Path)):
        return Image.open(x).convert("RGB")
    elif isinstance(x, bytes):
        return Image.open(io.BytesIO(x)).convert("RGB")
    elif isinstance(x, Image.Image):
        return x.convert("RGB")
    elif isinstance(x, np.ndarray):
        if x.dtype != np.uint8:
            x = (x * 255).astype(np.uint8)
        return Image.fromarray(x).convert("RGB")
    else:
        raise ValueError(f"Unsupported image type: {type(x)}")


def decode_upload(data: bytes, filename: Optional[str] = None) -> Image.Image:
    """
    Decode uploaded file content into a displayable RGB image.

    Raises:
        ImageDecodeError: If the bytes are not a readable image
    """
    name = filename or "upload"
    if not data:
        raise ImageDecodeError(f"{name} is empty")
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"{name} is not a readable image") from e
    return img.convert("RGB")


def _resize_transform(size: int) -> transforms.Compose:
    # Plain resize to size x size: non-square inputs are stretched, not cropped
    return transforms.Compose([
        transforms.Resize((size, size), interpolation=InterpolationMode.BILINEAR),
        transforms.ToTensor(),
    ])


def preprocess(
    img: Union[ImageInput, torch.Tensor],
    size: int = INPUT_SIZE,
    channels_last: bool = False
) -> torch.Tensor:
    """
    Preprocess image for model inference.

    The image is resized bilinearly to ``size`` x ``size`` without cropping,
    so the aspect ratio of non-square images is not preserved. Pixel values
    are scaled to [0, 1]; no mean/std normalization is applied.

    Args:
        img: Input image in various formats
        size: Target spatial size (default 224)
        channels_last: Return NHWC instead of NCHW

    Returns:
        Float tensor of shape (1, 3, size, size), or (1, size, size, 3)
    """
    if isinstance(img, torch.Tensor):
        tensor = img.float()
        if tensor.dim() == 3:
            tensor = tensor.unsqueeze(0)  # Add batch dimension
        if tensor.dim() != 4 or tensor.shape[1] != 3:
            raise ValueError(f"Expected tensor of shape (3, H, W) or (1, 3, H, W), got {tuple(img.shape)}")

        if tensor.shape[-2:] != (size, size):
            tensor = torch.nn.functional.interpolate(
                tensor, size=(size, size), mode="bilinear", align_corners=False
            )
    else:
        pil_img = load_image(img)
        tensor = _resize_transform(size)(pil_img).unsqueeze(0)

    if channels_last:
        tensor = tensor.permute(0, 2, 3, 1).contiguous()

    return tensor


def preprocess_batch(
    images: list,
    size: int = INPUT_SIZE,
    channels_last: bool = False
) -> torch.Tensor:
    """
    Preprocess a batch of images.

    Args:
        images: List of images in various formats
        size: Target spatial size
        channels_last: Return NHWC instead of NCHW

    Returns:
        Batch tensor ready for model input
    """
    tensors = []
    for img in images:
        tensor = preprocess(img, size=size, channels_last=channels_last)
        tensors.append(tensor.squeeze(0))  # Remove batch dim

    return torch.stack(tensors)
