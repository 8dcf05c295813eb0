"""
FastAPI API package for the thermal detection handler.

Exposes:
- `main`           : FastAPI application with `/detect-thermal` and `/health`
- `lambda_handler` : Mangum entrypoint for serverless deployment
"""
