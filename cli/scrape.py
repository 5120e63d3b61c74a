import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

from forum_scraper.config import load_settings
from forum_scraper.errors import ScrapeError
from forum_scraper.extractor import ResourceExtractor
from forum_scraper.pipeline import ScrapeService, validate_target_url

console = Console(stderr=True, theme=Theme({"info": "cyan", "success": "green", "error": "bold red"}))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scrape a forum thread into title, videos, images and zips.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--url", help="Thread URL to render and scrape (must be on an allowed origin).")
    source.add_argument("--html-file", type=Path, help="Saved page markup; runs extraction only, no browser.")
    parser.add_argument("--settings", help="Path to settings.yaml (defaults to config/settings.yaml).")
    parser.add_argument("--output", "-o", type=Path, help="Write the JSON result to this file instead of stdout.")
    return parser


async def scrape_url(url: str, settings) -> dict:
    validate_target_url(url, settings.server.allowed_prefixes)
    service = ScrapeService.from_settings(settings)
    try:
        result = await service.scrape(url)
    finally:
        await service.close()
    return result.to_dict()


def extract_file(path: Path, settings) -> dict:
    html = path.read_text(encoding="utf-8", errors="replace")
    extractor = ResourceExtractor(settings.extraction, settings.classification)
    return extractor.extract(html).to_dict()


def main(argv=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = load_settings(args.settings)

    try:
        if args.url:
            console.print(f"[info]Scraping {args.url}[/info]")
            result = asyncio.run(scrape_url(args.url, settings))
        else:
            console.print(f"[info]Extracting from {args.html_file}[/info]")
            result = extract_file(args.html_file, settings)
    except (ScrapeError, OSError) as e:
        console.print(f"[error]Error: {escape(str(e))}[/error]")
        return 1

    output = json.dumps(result, indent=2)
    if args.output:
        args.output.write_text(output + "\n", encoding="utf-8")
        console.print(f"[success]Wrote result to {args.output}[/success]")
    else:
        sys.stdout.write(output + "\n")
    console.print(
        f"[success]{escape(result['title'])}: {len(result['videos'])} videos, "
        f"{len(result['images'])} images, {len(result['zips'])} zips[/success]"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
