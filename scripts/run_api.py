#!/usr/bin/env python3
"""
Run the cache drift checker API under uvicorn.
"""

import argparse
import sys
from pathlib import Path

# Add the parent directory to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn

from src.api.main import create_app
from src.core.config import VERSION


def main():
    parser = argparse.ArgumentParser(description='Serve the Cache Drift Checker API')
    parser.add_argument('--port', type=int, default=8000,
                        help='Port to serve on (default: 8000)')
    parser.add_argument('--host', default='127.0.0.1',
                        help='Host to bind to (default: 127.0.0.1)')
    args = parser.parse_args()

    print(f"Cache Drift Checker {VERSION} on http://{args.host}:{args.port}")
    uvicorn.run(create_app(), host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
