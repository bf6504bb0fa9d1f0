"""Order notification pipeline: normalize, enrich with images, publish."""
