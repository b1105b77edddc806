"""Utility functions."""

from .io import (
    setup_logger,
    safe_create_dir,
    check_signed_url,
    download_file,
    download_huggingface_model,
    get_model_path,
    save_json,
    format_file_size
)

__all__ = [
    "setup_logger",
    "safe_create_dir",
    "check_signed_url",
    "download_file",
    "download_huggingface_model",
    "get_model_path",
    "save_json",
    "format_file_size"
]
