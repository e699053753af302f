"""
Image generation proxy package.

Provides:
- Retrying async HTTP client for the upstream text-to-image API
- Request handler that injects the server-side credential
- FastAPI app + uvicorn launcher, and a one-shot CLI runner
"""
