"""Allow ``python -m proxy_stream``."""

from proxy_stream.cmd.cli import app

if __name__ == "__main__":
    app()
