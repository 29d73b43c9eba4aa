#!/usr/bin/env python
"""Script to run the Taskboard API server."""
import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "taskboard.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
