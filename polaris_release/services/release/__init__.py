"""Release stages: branch and tag, draft release, platform artifacts."""
