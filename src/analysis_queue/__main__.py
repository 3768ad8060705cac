"""Entry point for running analysis-queue as a module.

Usage:
    python -m analysis_queue [command] [options]
"""

from analysis_queue.cli.main import app

if __name__ == "__main__":
    app()
