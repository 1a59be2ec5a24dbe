# debug_app.py
# Single-process dev server; tracing headers and context logs are visible on stdout.
import os

import uvicorn

os.environ.setdefault("LOG_FORMAT", "console")

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=False,  # one process => one provider cache
        log_level="debug",
    )
