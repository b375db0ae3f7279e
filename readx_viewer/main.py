# main.py
import argparse

from .app import ReaderApp


def main():
    """Main function to run the ReadX reference viewer."""
    parser = argparse.ArgumentParser(description="ReadX PDF reader with tap-to-look-up words")
    parser.add_argument("path", nargs="?", help="PDF file to open")
    parser.add_argument("--page", type=int, default=1, help="page to open at (1-based)")
    args = parser.parse_args()

    app = ReaderApp(args.path, args.page)
    app.mainloop()


if __name__ == "__main__":
    main()
