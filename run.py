#!/usr/bin/env python3
"""
CrediFlow Entry Point

Starts the FastAPI server with the microfinance back office.
"""

import sys

import uvicorn

from crediflow.api import create_app
from crediflow.config import get_config
from crediflow.logging_config import setup_logging
from crediflow.system import MicrofinanceSystem


if __name__ == "__main__":
    config = get_config()
    setup_logging(level=config.log_level, log_format=config.log_format)

    print("💸 Starting CrediFlow...")
    print(f"💱 Currency: {config.currency}")
    print("🔒 Audit trail active" if config.enable_audit_logging else "🔓 Audit trail disabled")
    print(f"🌐 API available at: http://localhost:{config.api_port}")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        app = create_app(MicrofinanceSystem(config=config))
        uvicorn.run(app, host=config.api_host, port=config.api_port, log_level=config.log_level.lower())
    except KeyboardInterrupt:
        print("\n👋 Shutting down CrediFlow...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
