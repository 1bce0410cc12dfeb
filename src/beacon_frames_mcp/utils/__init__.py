"""Low-level helpers shared by the frame codecs."""
