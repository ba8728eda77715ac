"""Scene serialization: SVG documents and PNG rasters."""
