"""Services layer: release orchestration over git and gh."""
