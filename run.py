#!/usr/bin/env python3
"""
SignalDesk - Application Entry Point
Run this file to start the development server
"""
import os
import sys
import socket

# Load environment variables
from dotenv import load_dotenv
load_dotenv()

from signaldesk import create_app, __version__

# Create the application
app = create_app()


def is_port_in_use(port):
    """Check if a port is already in use"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        return s.connect_ex(('localhost', port)) == 0


def find_available_port(preferred_port=5000):
    """Find an available port, starting with the preferred one"""
    ports_to_try = [preferred_port, 5001, 5002, 8000, 8080]

    for port in ports_to_try:
        if not is_port_in_use(port):
            return port

    return None


if __name__ == '__main__':
    # Get configuration from environment
    host = os.environ.get('HOST', '0.0.0.0')
    preferred_port = int(os.environ.get('PORT', 5000))
    debug = os.environ.get('FLASK_ENV', 'development') == 'development'

    # Find available port
    port = find_available_port(preferred_port)

    if port is None:
        print("\nERROR: No available ports found!")
        print("   Specify a different port: PORT=8080 python run.py")
        sys.exit(1)

    if port != preferred_port:
        print(f"\nPort {preferred_port} is in use, using port {port} instead.\n")

    print(f"""
  SignalDesk v{__version__}

  Site:    http://localhost:{port}
  API:     http://localhost:{port}/api
  Health:  http://localhost:{port}/health

  Environment: {'development' if debug else 'production'}
  Press Ctrl+C to stop
    """)

    try:
        app.run(host=host, port=port, debug=debug)
    except OSError as e:
        if "Address already in use" in str(e):
            print(f"\nPort {port} is now in use by another process.")
            print("   Try: PORT=8080 python run.py")
        else:
            raise
