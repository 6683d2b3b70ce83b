"""HTTP routers for the training log API."""
