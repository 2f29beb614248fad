#!/usr/bin/env python3
"""Startup script for the Hello MCP Server.

This script starts the MCP server using stdio transport, which is the
standard way to connect MCP servers to AI assistants like Claude Desktop,
VS Code with GitHub Copilot, or other MCP-compatible clients.

The Hugging Face token is read from the HF_TOKEN environment variable
(or a .env file next to this script).

Usage:
    python run_server.py
"""
import sys
from pathlib import Path

# Add the project directory to path so imports work correctly
project_dir = Path(__file__).resolve().parent
if str(project_dir) not in sys.path:
    sys.path.insert(0, str(project_dir))

from hello_mcp.server import main

if __name__ == "__main__":
    main()
