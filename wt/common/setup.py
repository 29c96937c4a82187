import os
from pathlib import Path
from dataclasses import dataclass

# Creates the directory (and parents) when missing, returns the path either way.
def ensure_directory(path: Path):
    path.mkdir(parents=True,exist_ok=True)
    return path

# Dataclass for accessing paths across program.
@dataclass(frozen=False)
class ProjectPaths:

    data: Path
    logs: Path
    current: Path

    @staticmethod
    def build():
        # WEEKTIME_HOME wins, so separate installs (and test runs) can keep their own data folder.
        home = os.getenv("WEEKTIME_HOME")
        if home:
            data = ensure_directory(Path(home).expanduser())
        else:
            data = ensure_directory(Path.home() / ".weektime")

        # Folders within the data folder
        logs = ensure_directory(data / "logs")
        current = ensure_directory(data / "current")

        return ProjectPaths(
            data = data,
            logs = logs,
            current = current,
        )
PATHS = ProjectPaths.build()
