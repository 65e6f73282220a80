"""
Task Manager backend package.

The FastAPI application lives in `src.api.main` (`app` for uvicorn,
`create_app()` for tests and embedding).
"""
