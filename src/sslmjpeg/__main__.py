"""Main entry point for running sslmjpeg as a module.

Usage:
    python -m sslmjpeg grab <url>
    python -m sslmjpeg --help
"""

from sslmjpeg.cli import main

if __name__ == '__main__':
    main()
