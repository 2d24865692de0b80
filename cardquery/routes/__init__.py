"""
FastAPI routers for all API endpoints.

- health.py: GET /health
- query.py: POST /api/query (Server-Sent Events)
"""
