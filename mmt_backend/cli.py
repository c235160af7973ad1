"""
Command line entry point: `python -m mmt_backend <command>`.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Optional

from mmt_shared import Result, get_logger

from .config import HOST, PORT
from .deps import build_services
from .features.metadata.record import MetadataPatch

logger = get_logger(__name__)


def _envelope(result: Result) -> dict[str, Any]:
    data = result.data
    if hasattr(data, "to_dict"):
        data = data.to_dict()
    return {"ok": result.ok, "data": data, "error": result.error, "code": result.code, "meta": result.meta}


def _emit(result: Result) -> int:
    print(json.dumps(_envelope(result), ensure_ascii=False, indent=2, default=str))
    return 0 if result.ok else 1


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mmt",
        description="Read, write and clear title/comments/tags/rating on media files.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=HOST)
    serve.add_argument("--port", type=int, default=PORT)

    read = sub.add_parser("read", help="Print the merged metadata of a file")
    read.add_argument("path")

    write = sub.add_parser("write", help="Write metadata (omitted options keep stored values)")
    write.add_argument("path")
    write.add_argument("--title")
    write.add_argument("--comments")
    write.add_argument("--tags", help='Delimited list, e.g. "a; b, c"')
    write.add_argument("--rating", type=int)

    clear = sub.add_parser("clear", help="Blank every metadata field of a file")
    clear.add_argument("path")

    sub.add_parser("tools", help="Report external tool availability")
    return parser.parse_args(argv)


def _patch_from_args(args: argparse.Namespace) -> MetadataPatch:
    return MetadataPatch(title=args.title, comments=args.comments, tags=args.tags, rating=args.rating)


async def _run_command(args: argparse.Namespace) -> Result:
    services_res = await build_services()
    if not services_res.ok:
        return services_res
    services = services_res.data or {}
    resolver = services["metadata"]
    if args.command == "read":
        return await resolver.aread(args.path)
    if args.command == "write":
        return await resolver.awrite(args.path, _patch_from_args(args))
    if args.command == "clear":
        return await resolver.aclear(args.path)
    return await services["health"].status()


def _serve(host: str, port: int) -> int:
    from aiohttp import web

    from .routes import create_app
    from .routes.core import prewarm_services

    async def _on_startup(_app: web.Application) -> None:
        await prewarm_services()

    app = create_app()
    app.on_startup.append(_on_startup)
    logger.info("Serving on http://%s:%s", host, port)
    web.run_app(app, host=host, port=port, print=None)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    if args.command == "serve":
        return _serve(args.host, args.port)
    return _emit(asyncio.run(_run_command(args)))


if __name__ == "__main__":
    sys.exit(main())
