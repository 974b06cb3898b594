#!/usr/bin/env python3
"""
Command-line interface for the website clone generation pipeline.
"""

import argparse
import sys
import uuid
from pathlib import Path

from dotenv import load_dotenv

from clone_gen.config import PipelineConfig
from clone_gen.io.markup import sanitize_markup
from clone_gen.io.project_store import FileProjectStore
from clone_gen.io.reference_loader import ReferenceLoader
from clone_gen.orchestration import (
    GenerationPipeline,
    get_project_summary,
    get_run_summary,
    run_with_retries,
)
from clone_gen.pipeline.continuation import needs_continuation
from clone_gen.pipeline.model_client import ModelClient
from clone_gen.pipeline.parser import parse_actions
from clone_gen.utils.llm_logger import LLMLogger

# Load environment variables
load_dotenv()

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".webp", ".gif"}


def _collect_screenshots(paths):
    """Expand screenshot arguments; directories contribute their image files."""
    screenshots = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            screenshots.extend(sorted(p for p in path.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES))
        else:
            screenshots.append(path)
    return screenshots


def cmd_generate(args):
    """Generate a project from screenshots and saved markup."""
    print("🚀 Generating project...")

    screenshots = _collect_screenshots(args.screenshots or [])
    for path in screenshots:
        if not path.exists():
            print(f"❌ Error: Screenshot not found: {path}")
            return 1

    markup = ""
    if args.markup:
        markup_path = Path(args.markup)
        if not markup_path.exists():
            print(f"❌ Error: Markup file not found: {markup_path}")
            return 1
        markup = markup_path.read_text(encoding="utf-8")

    project_id = args.project_id or uuid.uuid4().hex[:12]
    config = PipelineConfig.from_env(output_dir=Path(args.output))
    if args.model:
        config.model.model = args.model
    if args.no_revision:
        config.enable_revision = False

    print(f"📁 Project ID: {project_id}")
    print(f"🌐 Site: {args.site_url}")
    print(f"🖼️  Screenshots: {len(screenshots)}")
    print(f"📄 Markup: {len(markup)} chars")
    print(f"🤖 Using {config.model.model}")

    loader = ReferenceLoader(timeout=config.image_timeout_seconds)
    images = [loader.image_to_data_url(path) for path in screenshots]

    logger = LLMLogger(log_dir=config.output_dir)
    store = FileProjectStore(config.output_dir)
    payload = {
        "projectId": project_id,
        "siteUrl": args.site_url,
        "userPrompt": args.prompt,
        "markup": markup,
        "images": images,
    }

    with ModelClient(config.model, logger=logger) as client:
        pipeline = GenerationPipeline(store, client, config=config, logger=logger, loader=loader)
        result = run_with_retries(pipeline, payload, max_attempts=args.attempts, logger=logger)

    print("✅ Project generated successfully!")
    if result.degraded:
        print("⚠️  Run completed in degraded mode (see logs)")
    print(get_run_summary(result))
    print(f"💾 Files: {config.output_dir / project_id / FileProjectStore.FILES_DIRNAME}")

    return 0


def cmd_parse(args):
    """Parse a saved model response."""
    response_path = Path(args.response)
    if not response_path.exists():
        print(f"❌ Error: Response file not found: {response_path}")
        return 1

    parsed = parse_actions(response_path.read_text(encoding="utf-8"))

    print(f"📄 Response: {response_path}")
    print(f"📦 Files: {len(parsed.files)}")
    for file in parsed.files:
        print(f"   {file.path} ({len(file.content)} chars)")
    print(f"🔧 Diffs: {len(parsed.diffs)}")
    for diff in parsed.diffs:
        print(f"   {diff.path}")
    print(f"🔚 Wrapper closed: {parsed.wrapper_closed}")
    print(f"✂️  Unterminated actions: {parsed.unterminated}")

    if needs_continuation(parsed):
        print("⚠️  Response is incomplete and would need continuation")
    else:
        print("✅ Response is complete")

    return 0


def cmd_sanitize(args):
    """Sanitize a markup file."""
    markup_path = Path(args.markup)
    if not markup_path.exists():
        print(f"❌ Error: Markup file not found: {markup_path}")
        return 1

    raw = markup_path.read_text(encoding="utf-8")
    max_chars = args.max_chars if args.max_chars is not None else PipelineConfig.from_env().max_markup_chars
    sanitized = sanitize_markup(raw, max_chars)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(sanitized, encoding="utf-8")
        print(f"✅ Sanitized markup saved to: {output_path}")
    else:
        print(sanitized)

    print(f"📊 {len(raw)} -> {len(sanitized)} chars", file=sys.stderr)
    return 0


def cmd_status(args):
    """Show a stored project's status."""
    store = FileProjectStore(args.output)
    record = store.get_project(args.project_id)
    if record is None:
        print(f"❌ Error: Project not found: {args.project_id}")
        return 1

    files = store.load_files(args.project_id)
    print(get_project_summary(record, files))
    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Generate a multi-file web project from a captured website",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Generate command
    gen_parser = subparsers.add_parser("generate", help="Generate a project from screenshots and markup")
    gen_parser.add_argument("--site-url", "-u", required=True, help="URL of the site being cloned")
    gen_parser.add_argument("--screenshots", "-i", nargs="*", help="Screenshot files or directories")
    gen_parser.add_argument("--markup", "-m", help="Path to saved page markup")
    gen_parser.add_argument("--prompt", "-p", help="Additional user request")
    gen_parser.add_argument("--project-id", "-s", help="Project identifier (default: random)")
    gen_parser.add_argument("--output", "-o", default="outputs", help="Output directory")
    gen_parser.add_argument("--model", help="Model name (default: GENERATION_MODEL)")
    gen_parser.add_argument("--attempts", type=int, default=3, help="Whole-run attempts")
    gen_parser.add_argument("--no-revision", action="store_true", help="Skip the revision pass")

    # Parse command
    parse_parser = subparsers.add_parser("parse", help="Parse a saved model response")
    parse_parser.add_argument("--response", "-r", required=True, help="Path to response text")

    # Sanitize command
    sanitize_parser = subparsers.add_parser("sanitize", help="Sanitize a markup file")
    sanitize_parser.add_argument("--markup", "-m", required=True, help="Path to markup file")
    sanitize_parser.add_argument("--output", "-o", help="Write sanitized markup here instead of stdout")
    sanitize_parser.add_argument("--max-chars", type=int, help="Maximum sanitized length")

    # Status command
    status_parser = subparsers.add_parser("status", help="Show a stored project's status")
    status_parser.add_argument("project_id", help="Project identifier")
    status_parser.add_argument("--output", "-o", default="outputs", help="Output directory")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == "generate":
            return cmd_generate(args)
        elif args.command == "parse":
            return cmd_parse(args)
        elif args.command == "sanitize":
            return cmd_sanitize(args)
        elif args.command == "status":
            return cmd_status(args)
    except KeyboardInterrupt:
        print("\n\n⚠️  Interrupted by user")
        return 130
    except Exception as e:
        print(f"\n❌ Error: {str(e)}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
