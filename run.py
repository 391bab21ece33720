import argparse
import logging

from markwise import create_app


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="markwise", description="Markwise bookmark server")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8080)
    p.add_argument("--debug", action="store_true", help="enable the Flask debugger and reloader")
    p.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    p.add_argument(
        "--access-log",
        action="store_true",
        help="keep werkzeug's per-request log lines",
    )
    return p.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not args.access_log:
        logging.getLogger("werkzeug").setLevel(logging.WARNING)

    app = create_app()
    app.logger.info("Markwise listening on http://%s:%s", args.host, args.port)
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
