"""Export or import every stored game through the configured backend.

Usage:
    uv run python bin/backup.py export <file>
    uv run python bin/backup.py import <file>

The backend is chosen by the STORAGE_* environment variables. Import
replaces all stored games with the contents of the file.
"""

import asyncio
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from shared.storage import StorageSettings, create_storage_backend

COMMANDS = ("export", "import")


async def main() -> None:
    if len(sys.argv) != 3 or sys.argv[1] not in COMMANDS:
        print(f"Usage: {sys.argv[0]} export|import <file>")
        sys.exit(1)

    command, path = sys.argv[1], Path(sys.argv[2])
    storage = create_storage_backend(StorageSettings())

    if command == "export":
        result = await storage.export_data()
        if not result.success or result.data is None:
            print(f"Error: {result.error}")
            sys.exit(1)
        path.write_text(result.data, encoding="utf-8")
        print(f"Exported games to {path}")
        return

    if not path.exists():
        print(f"Error: {path} does not exist")
        sys.exit(1)
    result = await storage.import_data(path.read_text(encoding="utf-8"))
    if not result.success:
        print(f"Error: {result.error}")
        sys.exit(1)
    print(f"Imported games from {path}")


if __name__ == "__main__":
    asyncio.run(main())
