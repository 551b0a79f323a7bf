#!/usr/bin/env python3
"""
Simple Starter
Starts the potluck app with proper imports
"""

import uvicorn
import os
import sys

if __name__ == "__main__":
    # Ensure we're in the project root directory
    # (where this script is located)
    script_dir = os.path.dirname(os.path.abspath(__file__))
    os.chdir(script_dir)

    # Add project root to Python path
    sys.path.insert(0, script_dir)

    port = int(os.getenv("PORT", "8000"))
    print(f"🚀 Starting Potluck RSVP from: {script_dir}")
    print(f"📡 Sign-up page will be available at: http://localhost:{port}")
    print(f"📄 API docs will be available at: http://localhost:{port}/docs")

    uvicorn.run(
        "app.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=port,
        reload=True,
        reload_dirs=["./app"],  # Only watch the app directory
    )
