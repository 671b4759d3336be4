"""
Module entry point for: python -m docx_parser

Allows running the converter directly as a module:
    python -m docx_parser convert <docx_path> [options]
    python -m docx_parser batch <directory> [options]
    python -m docx_parser serve [options]
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
