"""
Run the Card Query backend locally with uvicorn.

Host and port come from HOST / PORT (defaults 0.0.0.0:3001).
"""

import uvicorn

from cardquery.config import settings

if __name__ == "__main__":
    print("=" * 60)
    print("Starting Card Query Backend")
    print("=" * 60)
    print()
    print("📌 API Endpoints:")
    print(f"   - Health Check:  GET  http://localhost:{settings.PORT}/health")
    print(f"   - Query:         POST http://localhost:{settings.PORT}/api/query")
    print(f"   - API Docs:           http://localhost:{settings.PORT}/docs")
    print()
    print("📝 Test with curl:")
    print(f'   curl -N -X POST "http://localhost:{settings.PORT}/api/query" \\')
    print('     -H "Content-Type: application/json" \\')
    print('     -d \'{"query": "No annual fee cards"}\'')
    print()
    print("=" * 60)
    print(f"Strategy: {settings.QUERY_STRATEGY}   Model: {settings.GEMINI_MODEL}")
    print("Press Ctrl+C to stop")
    print("=" * 60)
    print()

    uvicorn.run(
        "cardquery.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development(),
        log_level=settings.LOG_LEVEL.lower(),
    )
