"""Main entry point for the Pizza Order Simulator."""

import os

import uvicorn

from simulator_service.server import app

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8080")))
