#!/usr/bin/env python3
"""
PatentVault Command Line Interface.

Provides commands for running and managing PatentVault:
    - serve: Start the API server
    - check: Verify installation and storage reachability
    - info: Display configuration and storage information
    - hash: Print the content hash of a file

Usage:
    patentvault serve [--host HOST] [--port PORT] [--debug] [--production --workers N]
    patentvault check
    patentvault info
    patentvault hash FILE
    patentvault --version
"""

import argparse
import os
import sys

# Ensure src is in path when running from source
if os.path.exists(os.path.join(os.path.dirname(__file__), "zk_proofs.py")):
    sys.path.insert(0, os.path.dirname(__file__))

__version__ = "1.0.0"


def _load_config():
    from dotenv import load_dotenv

    from config import Config

    load_dotenv()
    return Config.from_env()


def cmd_serve(args):
    """Start the PatentVault API server."""
    from api import create_app
    from monitoring import configure_logging

    config = _load_config()
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.debug:
        config.debug = True

    configure_logging(level=config.log_level, json_output=config.json_logging)
    print(f"Starting PatentVault API server on {config.host}:{config.port}")

    if args.production:
        try:
            import gunicorn.app.base
        except ImportError:
            print("Error: gunicorn not installed. Install with: pip install patentvault[production]")
            return 1

        class StandaloneApplication(gunicorn.app.base.BaseApplication):
            """Serve an already-built Flask app with gunicorn."""

            def __init__(self, app, options=None):
                self.options = options or {}
                self.application = app
                super().__init__()

            def load_config(self):
                for key, value in self.options.items():
                    if key in self.cfg.settings and value is not None:
                        self.cfg.set(key.lower(), value)

            def load(self):
                return self.application

        # The registry lives in process memory: extra workers would each hold their own
        options = {
            "bind": f"{config.host}:{config.port}",
            "workers": args.workers or int(os.getenv("WORKERS", 1)),
            "worker_class": "gthread",
            "threads": int(os.getenv("THREADS", 8)),
            "timeout": int(config.ipfs_timeout) + 30,
            "accesslog": "-",
            "errorlog": "-",
        }
        StandaloneApplication(create_app(config), options).run()
    else:
        create_app(config).run(host=config.host, port=config.port, debug=config.debug)
    return 0


def cmd_check(args):
    """Check installation and configuration."""
    print("PatentVault Installation Check")
    print("=" * 40)

    checks = []

    try:
        from encryption import decrypt_data, encrypt_data

        result = encrypt_data(b"patentvault self-check")
        decrypt_data(result.blob, result.encryption_key)
        checks.append(("Encryption (AES-256-GCM)", "OK"))
    except Exception as e:
        checks.append(("Encryption (AES-256-GCM)", f"FAIL: {e}"))

    try:
        from zk_proofs import ProofEngine

        ProofEngine().build_merkle_tree(["title", "claims"])
        checks.append(("Proof engine", "OK"))
    except Exception as e:
        checks.append(("Proof engine", f"FAIL: {e}"))

    try:
        from api import create_app  # noqa: F401

        checks.append(("Flask API", "OK"))
    except ImportError as e:
        checks.append(("Flask API", f"FAIL: {e}"))

    try:
        from storage import get_storage_backend

        storage = get_storage_backend(_load_config())
        backend_name = storage.__class__.__name__
        status = "OK" if storage.is_available() else "WARN (not available)"
        checks.append((f"Storage ({backend_name})", status))
    except Exception as e:
        checks.append(("Storage", f"FAIL: {e}"))

    try:
        import gunicorn  # noqa: F401

        checks.append(("Production server (gunicorn)", "OK"))
    except ImportError:
        checks.append(("Production server (gunicorn)", "SKIP (gunicorn not installed)"))

    print()
    all_ok = True
    for name, status in checks:
        icon = "✓" if status == "OK" else ("○" if "SKIP" in status or "WARN" in status else "✗")
        print(f"  {icon} {name}: {status}")
        if "FAIL" in status:
            all_ok = False

    print()
    if all_ok:
        print("All checks passed!")
        return 0
    else:
        print("Some checks failed. See above for details.")
        return 1


def cmd_info(args):
    """Display system information."""
    import platform

    config = _load_config()

    print("PatentVault System Information")
    print("=" * 40)
    print(f"Version: {__version__}")
    print(f"Python: {platform.python_version()}")
    print(f"Platform: {platform.platform()}")

    print()
    print("Configuration:")
    print(f"  STORAGE_BACKEND: {config.storage_backend}")
    print(f"  IPFS_API_URL: {config.ipfs_api_url}")
    print(f"  IPFS_GATEWAY_URL: {config.ipfs_gateway_url}")
    print(f"  FRONTEND_URL: {config.frontend_url}")
    print(f"  PATENTVAULT_API_KEY: {'configured' if config.api_key else 'not set'}")
    print(f"  LOG_LEVEL: {config.log_level}")
    print(f"  LOG_FORMAT: {config.log_format or 'console (default)'}")

    print()
    print("Storage:")
    try:
        from storage import get_storage_backend

        for key, value in get_storage_backend(config).get_info().items():
            print(f"  {key}: {value}")
    except Exception as e:
        print(f"  Error: {e}")

    return 0


def cmd_hash(args):
    """Print the SHA-256 content hash of a file, as the registry computes it."""
    from encryption import hash_content

    try:
        with open(args.file, "rb") as f:
            data = f.read()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"{hash_content(data)}  {args.file}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="patentvault",
        description="PatentVault - Encrypted patent storage with integrity proofs",
    )
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", help="Host to bind to (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, help="Port to bind to (default: 4000)")
    serve_parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    serve_parser.add_argument(
        "--production", action="store_true", help="Use gunicorn for production"
    )
    serve_parser.add_argument("--workers", type=int, help="Number of workers (production mode)")

    subparsers.add_parser("check", help="Check installation and configuration")
    subparsers.add_parser("info", help="Display system information")

    hash_parser = subparsers.add_parser("hash", help="Print the content hash of a file")
    hash_parser.add_argument("file", help="Path to the file")

    return parser


COMMANDS = {
    "serve": cmd_serve,
    "check": cmd_check,
    "info": cmd_info,
    "hash": cmd_hash,
}


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)

    sys.exit(command(args))


if __name__ == "__main__":
    main()
