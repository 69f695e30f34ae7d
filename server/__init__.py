"""HTTP surface for the diagram repair pipeline and render sessions."""
