"""HTTP surface - request validation, orchestration and routes."""
