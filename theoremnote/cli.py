#!/usr/bin/env python
"""
Command-line interface for Theorem Note
"""

import argparse
import sys
from pathlib import Path

from theoremnote.version_info import __version__, __build_timestamp__, __build_type__


def print_version():
    """Print version information."""
    print(f"Theorem Note v{__version__}")
    print(f"Build: {__build_timestamp__}")
    print(f"Build Type: {__build_type__}")


def start_server(args):
    """Start the Flask server."""
    from theoremnote.app import app
    from theoremnote.core.context import set_project_root

    if args.root:
        set_project_root(str(Path(args.root).resolve()))

    host = args.host
    port = args.port or 8000

    print(f"Starting Theorem Note v{__version__}")
    print(f"Server: http://{host}:{port}")
    print("Press Ctrl+C to stop")
    print()

    app.run(host=host, port=port, debug=args.debug)


def render_file(args):
    """Render one Markdown file to HTML on stdout."""
    from theoremnote.core.context import RenderContext
    from theoremnote.core.renderer import render_sync

    source = Path(args.file)
    text = source.read_text(encoding='utf-8')
    root = args.root if args.root is not None else str(source.resolve().parent)
    print(render_sync(text, RenderContext.for_root(root)))


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description=f'Theorem Note v{__version__}',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  theorem-note --version                Show version information
  theorem-note start                    Start server on 127.0.0.1:8000
  theorem-note start --root ~/notes     Open a project folder on start
  theorem-note render note.md           Print rendered HTML
        """
    )

    parser.add_argument(
        '--version', '-v',
        action='store_true',
        help='Show version information'
    )
    parser.add_argument(
        '--host',
        type=str,
        default='127.0.0.1',
        help='Host to bind to (default: 127.0.0.1)'
    )
    parser.add_argument(
        '--port', '-p',
        type=int,
        default=8000,
        help='Port to bind to (default: 8000)'
    )
    parser.add_argument(
        '--debug', '-d',
        action='store_true',
        help='Run in debug mode'
    )
    parser.add_argument(
        '--root', '-r',
        type=str,
        default=None,
        help='Project root folder'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')
    subparsers.add_parser('start', help='Start the editor server')
    render_parser = subparsers.add_parser('render', help='Render a Markdown file to HTML')
    render_parser.add_argument('file', help='Markdown file to render')

    args = parser.parse_args(argv)

    if args.version:
        print_version()
        return 0

    if args.command == 'render':
        try:
            render_file(args)
            return 0
        except Exception as e:
            print(f"Error rendering {args.file}: {e}", file=sys.stderr)
            return 1

    # Default behavior: Start Server
    try:
        start_server(args)
        return 0
    except KeyboardInterrupt:
        print("\nServer stopped.")
        return 0
    except Exception as e:
        print(f"Error starting server: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
