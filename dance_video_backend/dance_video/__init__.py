"""Photo-to-dance-video generation pipeline."""
