#!/usr/bin/env python3
"""Run the project's formatters, linters and test suite in one go.

Steps, in order:
1. Black format check
2. isort import-order check
3. Ruff static checks
4. Pylint over the application packages
5. pytest

Pass ``--fix`` to let Black, isort and Ruff rewrite files instead of only
checking them. Output of failing steps is repeated at the end.
"""

from pathlib import Path
import subprocess
import sys

PACKAGES = ["app", "core", "infrastructure", "main.py"]


def build_steps(fix: bool) -> list[tuple[list[str], str]]:
    """Commands to run, paired with a short label."""
    py = sys.executable
    black = [py, "-m", "black", "."] + ([] if fix else ["--check"])
    isort = [py, "-m", "isort", "."] + ([] if fix else ["--check-only"])
    ruff = [py, "-m", "ruff", "check", "."] + (["--fix"] if fix else [])
    return [
        (black, "black"),
        (isort, "isort"),
        (ruff, "ruff"),
        ([py, "-m", "pylint", *PACKAGES], "pylint"),
        ([py, "-m", "pytest", "-q"], "pytest"),
    ]


def run_step(cmd: list[str], label: str) -> tuple[bool, str]:
    """Run one command from the repository root; return (passed, output)."""
    print(f"\n{'=' * 60}")
    print(f"{label}: {' '.join(cmd[1:])}")
    print("=" * 60)

    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, check=False, cwd=Path(__file__).parent
        )
    except OSError as e:
        print(f"could not start: {e}")
        return False, str(e)

    output = (result.stdout + result.stderr).strip()
    passed = result.returncode == 0
    print("ok" if passed else f"FAILED (exit {result.returncode})")
    if output:
        print(output)
    return passed, output


def main(argv: list[str]) -> int:
    fix = "--fix" in argv
    results = [(label, *run_step(cmd, label)) for cmd, label in build_steps(fix)]

    print(f"\n{'=' * 60}")
    print("Summary")
    print("=" * 60)
    for label, passed, _ in results:
        print(f"{label:<8} {'passed' if passed else 'FAILED'}")

    failed = [(label, output) for label, passed, output in results if not passed]
    for label, output in failed:
        if output:
            print(f"\n--- {label} ---")
            print(output)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
