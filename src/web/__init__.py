"""HTTP surface: health endpoint and in-flight request tracking."""
