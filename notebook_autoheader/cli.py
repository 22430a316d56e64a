from notebook_autoheader.config import load_settings
from notebook_autoheader.controller import HeaderController, create_header_cell, has_header
from notebook_autoheader.core import parse_header, HEADER_LABELS
from notebook_autoheader.errors import AutoHeaderError
from notebook_autoheader.notebooks import FileNotebookHost
import sys
import os
import asyncio
import argparse
import logging
from typing import List


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Add and maintain metadata header cells in Jupyter notebooks.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Add a metadata header to notebooks that do not have one
  notebook-autoheader add my-first-post.ipynb --author "John Doe"

  # Show what would be inserted without touching the file
  notebook-autoheader add my-first-post.ipynb --dry-run

  # Open and save notebooks, refreshing their Last Modified line
  notebook-autoheader touch *.ipynb

  # Print the header fields of a notebook
  notebook-autoheader show my-first-post.ipynb"""
    )

    # Common arguments for all commands
    common_parser = argparse.ArgumentParser(add_help=False)
    common_parser.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Show debug output'
    )
    common_parser.add_argument(
        'files',
        nargs='+',
        help='Notebook files to process'
    )

    # Arguments that shape newly created headers
    header_parser = argparse.ArgumentParser(add_help=False)
    header_parser.add_argument(
        '--author',
        '-a',
        help='Author written into new headers (default: detected)'
    )
    header_parser.add_argument(
        '--category',
        '-c',
        help='Category written into new headers'
    )
    header_parser.add_argument(
        '--tag',
        '-t',
        action='append',
        default=[],
        help='Tag written into new headers (can be used multiple times)'
    )
    header_parser.add_argument(
        '--language',
        '-l',
        help='Language of the blank cell added to empty notebooks'
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to execute', required=True)

    add_parser = subparsers.add_parser(
        'add',
        help='Add a metadata header to notebooks',
        parents=[common_parser, header_parser]
    )
    add_parser.add_argument(
        '--dry-run',
        '-n',
        action='store_true',
        default=False,
        help='Show what would be done without making changes'
    )

    subparsers.add_parser(
        'touch',
        help='Open and save notebooks as an editor would, updating Last Modified',
        parents=[common_parser, header_parser]
    )

    subparsers.add_parser(
        'show',
        help='Print the metadata header of notebooks',
        parents=[common_parser]
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s: %(message)s'
    )

    files = valid_notebooks(args.files)
    if not files:
        print("No valid notebook files to process.")
        return 1

    try:
        if args.command == 'add':
            return asyncio.run(handle_add_command(args, files))
        elif args.command == 'touch':
            return asyncio.run(handle_touch_command(args, files))
        elif args.command == 'show':
            return asyncio.run(handle_show_command(args, files))
        else:
            parser.error(f"Unknown command: {args.command}")
    except AutoHeaderError as e:
        print(f"Error: {e}")
        return 1


def valid_notebooks(paths: List[str]) -> List[str]:
    """Keep the paths that point to existing .ipynb files."""
    notebooks = []
    for filepath in paths:
        if not os.path.exists(filepath):
            print(f"Warning: File not found: {filepath}")
            continue
        if not filepath.lower().endswith('.ipynb'):
            print(f"Warning: Not a notebook file: {filepath}")
            continue
        notebooks.append(filepath)
    return notebooks


def settings_from_args(args):
    return load_settings(
        author=args.author,
        category=args.category,
        tags=args.tag or None,
        language=args.language,
    )


async def handle_add_command(args, files: List[str]) -> int:
    """Handle the add command."""
    settings = settings_from_args(args)
    host = FileNotebookHost(settings.language)
    controller = HeaderController(host, settings)

    added = 0
    failed = 0
    for filepath in files:
        try:
            document = await host.open(filepath)
        except AutoHeaderError as e:
            print(f"Error processing {filepath}: {e}")
            failed += 1
            continue
        if args.dry_run:
            if has_header(document):
                print(f"[DRY-RUN] {filepath} already has a metadata header")
            else:
                print(f"[DRY-RUN] Would add metadata header to {filepath}")
                print("--- New header ---")
                print(create_header_cell(document.path, settings).source)
                print("------------------")
                added += 1
        elif await controller.add_metadata_command():
            if await host.save(document):
                added += 1
            else:
                print(f"Error processing {filepath}: could not save notebook")
                failed += 1
        await host.close(document)

    if args.dry_run:
        print(f"\nDry run completed: {added}/{len(files)} notebooks would be modified")
    else:
        print(f"\nProcessing completed: {added}/{len(files)} notebooks modified")
    return 1 if failed else 0


async def handle_touch_command(args, files: List[str]) -> int:
    """Handle the touch command."""
    settings = settings_from_args(args)
    host = FileNotebookHost(settings.language)
    controller = HeaderController(host, settings)
    controller.activate(host)

    saved = 0
    failed = 0
    try:
        for filepath in files:
            try:
                document = await host.open(filepath)
            except AutoHeaderError as e:
                print(f"Error processing {filepath}: {e}")
                failed += 1
                continue
            if await host.save(document):
                saved += 1
            else:
                print(f"Error processing {filepath}: could not save notebook")
                failed += 1
            await host.close(document)
    finally:
        controller.deactivate()

    print(f"\nProcessing completed: {saved}/{len(files)} notebooks saved")
    return 1 if failed else 0


async def handle_show_command(args, files: List[str]) -> int:
    """Handle the show command."""
    host = FileNotebookHost()
    failed = 0
    for filepath in files:
        try:
            document = await host.open(filepath)
        except AutoHeaderError as e:
            print(f"Error processing {filepath}: {e}")
            failed += 1
            continue
        print(f"File: {filepath}")
        if has_header(document):
            fields = parse_header(document.cell_at(0).get_text())
            for label in HEADER_LABELS:
                if label in fields:
                    print(f"  {label}: {fields[label]}")
        else:
            print("  No metadata header")
        await host.close(document)
    return 1 if failed else 0


if __name__ == '__main__':
    sys.exit(main())
