"""Zoom and rotation state for the displayed image."""

from dataclasses import dataclass

from PIL import Image

from .constants import MIN_ZOOM, ROTATE_STEP, ZOOM_STEP

# Rounding applied after each zoom step so repeated steps land on exact tenths
_ZOOM_DIGITS = 6


@dataclass
class ViewTransform:
    """Zoom scale and rotation in degrees, adjusted in fixed steps."""

    scale: float = 1.0
    rotation: int = 0

    def zoom_in(self) -> None:
        self.scale = round(self.scale + ZOOM_STEP, _ZOOM_DIGITS)

    def zoom_out(self) -> None:
        new_scale = round(self.scale - ZOOM_STEP, _ZOOM_DIGITS)
        if new_scale >= MIN_ZOOM:
            self.scale = new_scale

    def rotate_left(self) -> None:
        self.rotation -= ROTATE_STEP

    def rotate_right(self) -> None:
        self.rotation += ROTATE_STEP

    @property
    def display_rotation(self) -> int:
        """Rotation folded into [0, 360)."""
        return self.rotation % 360

    def css(self) -> str:
        """CSS ``transform`` value for the displayed image."""
        return f"scale({self.scale:g}) rotate({self.rotation}deg)"

    def apply(self, image: Image.Image) -> Image.Image:
        """
        Render the transform onto a copy of ``image``.

        Positive rotation turns clockwise, as CSS does; PIL rotates
        counter-clockwise, hence the sign flip.
        """
        out = image
        if self.display_rotation:
            out = out.rotate(-self.display_rotation, expand=True)
        if self.scale != 1.0:
            width = max(1, round(out.width * self.scale))
            height = max(1, round(out.height * self.scale))
            out = out.resize((width, height), Image.Resampling.BILINEAR)
        return out.copy() if out is image else out

    def as_dict(self) -> dict:
        return {"scale": self.scale, "rotation": self.rotation}
