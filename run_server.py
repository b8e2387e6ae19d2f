#!/usr/bin/env python3
"""Run the flashround API server."""

import logging
import os

import uvicorn


def main():
    logging.basicConfig(
        level=os.environ.get('FLASHROUND_LOG_LEVEL', 'INFO').upper(),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    print("Starting Flashround API server...")
    print("API documentation available at: http://localhost:8000/docs")
    uvicorn.run(
        "server.app:app",
        host="0.0.0.0",
        port=int(os.environ.get('FLASHROUND_PORT', 8000)),
        reload=True
    )


if __name__ == "__main__":
    main()
