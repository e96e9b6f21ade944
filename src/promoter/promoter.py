"""
Promoter console entry point.

Runs the engine against a live backend from the command line:

    promoter validate --platform email --content content.json
        Validate a content file against the platform's form fields.

    promoter apply --platform email --template summer-gig --content content.json
                   [--parsed parsed.json] [--uploads uploads.json]
                   [--targets '{"mode": "groups", "groups": ["g1"]}']
                   [--files f1 f2] [--output new.json]
        Apply a template and write the resulting content (stdout by default).

Debug logging is enabled with ``--debug`` or the PROMOTER_DEBUG environment
variable. Logs go to promoter.log (rotated at 10MB) and stdout.

Example:
    $ poetry run promoter validate --platform email --content draft.json
    title: Title is required
"""
import argparse
import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, List, Optional

from api import PromoterAPIClient
from config import get_locale_name, load_config
from editor import PlatformEditor, StaticDataProvider

logger = logging.getLogger(__name__)


def configure_logging(debug: bool = False) -> None:
    """Configure root logging with a 10MB rotating file and stdout."""
    log_level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear any existing handlers to avoid duplicates
    root_logger.handlers.clear()

    log_handler = RotatingFileHandler(
        "promoter.log",
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=3
    )
    log_handler.setLevel(log_level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    log_handler.setFormatter(formatter)
    root_logger.addHandler(log_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="promoter", description="Schema-driven event promoter engine")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", help="Path to config.yml")

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser("validate", help="Validate a content file")
    validate_parser.add_argument("--platform", required=True)
    validate_parser.add_argument("--content", required=True, help="Content JSON file")

    apply_parser = subparsers.add_parser("apply", help="Apply a template to a content file")
    apply_parser.add_argument("--platform", required=True)
    apply_parser.add_argument("--template", required=True, help="Template id")
    apply_parser.add_argument("--content", help="Content JSON file (empty content if omitted)")
    apply_parser.add_argument("--parsed", help="Parsed event data JSON file")
    apply_parser.add_argument("--uploads", help="Uploaded file references JSON file")
    apply_parser.add_argument("--targets", help="Targets selection as a JSON object")
    apply_parser.add_argument("--files", nargs="*", default=[], help="Specific file ids for this application")
    apply_parser.add_argument("--output", help="Write the new content here instead of stdout")

    return parser


def read_json_file(path: Optional[str], default: Any = None) -> Any:
    if not path:
        return default
    with open(path, "r") as f:
        return json.load(f)


def run_validate(editor: PlatformEditor, content: Dict[str, Any]) -> int:
    if editor.load_schema() is None:
        print(f"Error: {editor.schema_error}", file=sys.stderr)
        return 1

    result = editor.validate(content)
    if result.is_valid:
        print("Content is valid")
        return 0
    for name, message in result.errors.items():
        print(f"{name}: {message}")
    return 1


def run_apply(editor: PlatformEditor, args: argparse.Namespace, content: Dict[str, Any]) -> int:
    try:
        targets = json.loads(args.targets) if args.targets else None
    except json.JSONDecodeError as e:
        print(f"Error: invalid --targets JSON: {e}", file=sys.stderr)
        return 1
    if targets is not None and not isinstance(targets, dict):
        print("Error: --targets must be a JSON object", file=sys.stderr)
        return 1

    result = editor.apply_template(args.template, content, targets=targets, specific_files=args.files)
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    output = json.dumps(result.content, indent=2, ensure_ascii=False)
    if args.output:
        with open(args.output, "w") as f:
            f.write(output)
        logger.info(f"Wrote updated content to {args.output}")
    else:
        print(output)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the promoter console command.

    Returns:
        Process exit status (0 on success, 1 on validation or apply failure)
    """
    args = build_parser().parse_args(argv)

    debug = args.debug or os.environ.get("PROMOTER_DEBUG", "").lower() in ("true", "1", "yes")
    configure_logging(debug)
    if debug:
        logger.info("Debug mode enabled")

    config = load_config(args.config)
    client = PromoterAPIClient.from_config(config)

    try:
        content = read_json_file(args.content, {}) or {}
        parsed_data = read_json_file(getattr(args, "parsed", None))
        uploads = read_json_file(getattr(args, "uploads", None), [])
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to read input file: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    provider = StaticDataProvider(parsed_data, uploads, get_locale_name(config))
    editor = PlatformEditor(args.platform, client, provider, config=config)

    if args.command == "validate":
        return run_validate(editor, content)
    return run_apply(editor, args, content)


if __name__ == "__main__":
    sys.exit(main())
