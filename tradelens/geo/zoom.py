"""Composable zoom/pan transform layered over a base projection.

The transform is never baked into stored geometry: screen positions are
always ``transform.apply(projection.project(lonlat))``.
"""

from pydantic import BaseModel, ConfigDict

Point = tuple[float, float]


class ZoomTransform(BaseModel):
    """Affine transform ``p -> p * k + (x, y)``."""
    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0
    k: float = 1.0

    def apply(self, point: Point) -> Point:
        return (point[0] * self.k + self.x, point[1] * self.k + self.y)

    def invert(self, point: Point) -> Point:
        return ((point[0] - self.x) / self.k, (point[1] - self.y) / self.k)

    def compose(self, inner: "ZoomTransform") -> "ZoomTransform":
        """Return the transform equivalent to applying ``inner`` then ``self``."""
        return ZoomTransform(
            x=self.k * inner.x + self.x,
            y=self.k * inner.y + self.y,
            k=self.k * inner.k,
        )

    def translate_by(self, dx: float, dy: float) -> "ZoomTransform":
        """Pan by a screen-space offset."""
        return ZoomTransform(x=self.x + dx, y=self.y + dy, k=self.k)

    def scale_to(
        self,
        k: float,
        anchor: Point,
        extent: tuple[float, float] = (1.0, 8.0),
    ) -> "ZoomTransform":
        """Set the scale to ``k`` (clamped to extent) keeping ``anchor`` fixed on screen."""
        k = min(max(k, extent[0]), extent[1])
        ax, ay = self.invert(anchor)
        return ZoomTransform(x=anchor[0] - ax * k, y=anchor[1] - ay * k, k=k)

    def scale_by(
        self,
        factor: float,
        anchor: Point,
        extent: tuple[float, float] = (1.0, 8.0),
    ) -> "ZoomTransform":
        return self.scale_to(self.k * factor, anchor, extent)

    def to_svg(self) -> str:
        return f"translate({self.x:.3f},{self.y:.3f}) scale({self.k:.5f})"


IDENTITY = ZoomTransform()
