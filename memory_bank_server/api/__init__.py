"""HTTP surface: FastAPI application, event stream and command endpoint."""
