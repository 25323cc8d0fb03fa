"""HTTP surface for the rendering layer."""
