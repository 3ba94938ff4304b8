#!/usr/bin/env python3

import logging

import uvicorn

from vibe.app.main import create_app

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    app = create_app()
    uvicorn.run(app, host='0.0.0.0', port=8000, log_level='info')
