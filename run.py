#!/usr/bin/env python3
"""
Run script for the Penwwws backend
"""
import uvicorn

from penwwws.config.settings import settings
from penwwws.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, reload=settings.debug)
