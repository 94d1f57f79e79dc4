"""
Development server for the GameHub API.
Runs the FastAPI app under uvicorn; creates the tables on startup.
"""

import os

import uvicorn

HOST = os.environ.get("HOST", "127.0.0.1")
PORT = int(os.environ.get("PORT", "8000"))

if __name__ == "__main__":
    print(f"Serving GameHub API at http://{HOST}:{PORT}")
    print(f"Interactive docs at http://{HOST}:{PORT}/docs")
    uvicorn.run(
        "gamehub.api.main:app",
        host=HOST,
        port=PORT,
        reload=os.environ.get("RELOAD", "").lower() in ("1", "true", "yes"),
    )
