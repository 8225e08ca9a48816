"""Generate-and-upload planning for one build variant."""
