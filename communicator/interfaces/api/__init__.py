"""HTTP application: FastAPI app factory, schemas and request security."""
