"""CLI: fs-storage head | get | put | upload | copy | ls | rm | sign."""
import argparse
import asyncio
import json
import sys
from pathlib import Path

from app.core.config import get_settings
from app.core.constants import UrlType
from app.core.context import RequestContext
from app.core.structured_logging import configure_logging
from app.services.storage.local import FsStorage


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="fs-storage", description="Object-storage operations on the configured storage folder")
    parser.add_argument("--root", default=None, help="Storage folder path (default: STORAGE_FOLDER_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_head = sub.add_parser("head", help="Show object size")
    p_head.add_argument("key")
    p_head.set_defaults(func=cmd_head)

    p_get = sub.add_parser("get", help="Write object content to a file or stdout")
    p_get.add_argument("key")
    p_get.add_argument("-o", "--output", default=None, help="Output file (default: stdout)")
    p_get.set_defaults(func=cmd_get)

    p_put = sub.add_parser("put", help="Store a local file under key")
    p_put.add_argument("key")
    p_put.add_argument("file", help="Local file path")
    p_put.set_defaults(func=cmd_put)

    p_upload = sub.add_parser("upload", help="Copy a local file or directory tree under key")
    p_upload.add_argument("key")
    p_upload.add_argument("path", help="Local file or directory")
    p_upload.set_defaults(func=cmd_upload)

    p_copy = sub.add_parser("copy", help="Copy an object or prefix to another key")
    p_copy.add_argument("source")
    p_copy.add_argument("destination")
    p_copy.set_defaults(func=cmd_copy)

    p_ls = sub.add_parser("ls", help="List keys under prefix")
    p_ls.add_argument("prefix", nargs="?", default="")
    p_ls.set_defaults(func=cmd_ls)

    p_rm = sub.add_parser("rm", help="Delete an object or prefix (missing is not an error)")
    p_rm.add_argument("key")
    p_rm.set_defaults(func=cmd_rm)

    p_sign = sub.add_parser("sign", help="Print a signed download URL")
    p_sign.add_argument("key")
    p_sign.add_argument("--base-url", required=True, help="Public base URL of the file server")
    p_sign.add_argument("--type", choices=["session", "temporary"], default="temporary", help="URL type")
    p_sign.add_argument("--filename", default=None, help="Download filename")
    p_sign.add_argument("--shard-key", default=None, help="Shard key for downstream routing")
    p_sign.set_defaults(func=cmd_sign)

    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(settings)
    if args.root:
        settings = settings.model_copy(update={"storage_folder_path": args.root})
    try:
        storage = FsStorage.from_settings(settings)
        return asyncio.run(args.func(storage, args))
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


async def cmd_head(storage: FsStorage, args: argparse.Namespace) -> int:
    print(json.dumps(await storage.head_object(args.key)))
    return 0


async def cmd_get(storage: FsStorage, args: argparse.Namespace) -> int:
    async with await storage.create_read_stream(args.key) as stream:
        if args.output:
            with open(args.output, "wb") as out:
                async for chunk in stream:
                    out.write(chunk)
        else:
            async for chunk in stream:
                sys.stdout.buffer.write(chunk)
            sys.stdout.buffer.flush()
    return 0


async def cmd_put(storage: FsStorage, args: argparse.Namespace) -> int:
    path = Path(args.file)
    size = path.stat().st_size
    with path.open("rb") as f:
        await storage.put_object(args.key, f, size)
    print(json.dumps({"key": args.key, "content_length": size}))
    return 0


async def cmd_upload(storage: FsStorage, args: argparse.Namespace) -> int:
    await storage.upload_object(args.key, args.path)
    print(json.dumps(await storage.list_objects(args.key), indent=2))
    return 0


async def cmd_copy(storage: FsStorage, args: argparse.Namespace) -> int:
    await storage.copy_object(args.source, args.destination)
    return 0


async def cmd_ls(storage: FsStorage, args: argparse.Namespace) -> int:
    for key in await storage.list_objects(args.prefix):
        print(key)
    return 0


async def cmd_rm(storage: FsStorage, args: argparse.Namespace) -> int:
    await storage.delete_path(args.key)
    return 0


async def cmd_sign(storage: FsStorage, args: argparse.Namespace) -> int:
    url_type = UrlType.SESSION if args.type == "session" else UrlType.TEMPORARY
    ctx = RequestContext(shard_key=args.shard_key)
    print(storage.get_signed_url(ctx, args.base_url, args.key, url_type, args.filename))
    return 0


if __name__ == "__main__":
    sys.exit(main())
