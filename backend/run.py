"""
Vault Request Desk launcher

    python run.py                    # 127.0.0.1:8000
    python run.py --reload           # restart on code changes
    python run.py --host 0.0.0.0 --port 8080
"""
import argparse
import uvicorn

LOG_LEVELS = ["critical", "error", "warning", "info", "debug"]


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the Vault Request Desk API")
    parser.add_argument("--host", default="127.0.0.1", help="interface to bind (default: %(default)s)")
    parser.add_argument("--port", type=int, default=8000, help="port to bind (default: %(default)s)")
    parser.add_argument("--reload", action="store_true", help="reload when source files change")
    parser.add_argument("--log-level", default="info", choices=LOG_LEVELS, help="uvicorn log level")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    print(f"Vault Request Desk on http://{args.host}:{args.port} (reload={'on' if args.reload else 'off'})")
    uvicorn.run(
        "vaultdesk.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
