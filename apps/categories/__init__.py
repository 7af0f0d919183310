"""Categories: product classification with images and sort order."""
