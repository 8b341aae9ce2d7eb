#!/usr/bin/env python3
"""
Test runner for the UTF-32 to UTF-16 regex translator.

Orchestrates:
1. Translating each pattern from the YAML test config
2. Checking the translation (or the expected error) against the config
3. Matching sample strings with the translated pattern and comparing against
   Python's re, which understands \\UXXXXXXXX escapes natively
"""

import argparse
import io
import re
import sys
import yaml
from pathlib import Path

from utf32_regex import TranslationError, Utf32Regex, translate

# Ensure UTF-8 output on Windows
if sys.platform == 'win32':
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8', errors='replace')

# Paths
ROOT_DIR = Path(__file__).parent
DEFAULT_CONFIG = ROOT_DIR / "tests.yaml"


def run_utf16_matches(pattern: str, test_strings: list[str]) -> list[bool]:
    """Full-match each string against the translated pattern."""
    regex = Utf32Regex(pattern)
    return [regex.fullmatch(s) is not None for s in test_strings]


def run_reference_matches(pattern: str, test_strings: list[str]) -> list[bool] | None:
    """Full-match each string with Python's re on the untranslated pattern.

    Returns None when re cannot compile the pattern (6-digit \\U escapes are
    not valid Python syntax).
    """
    try:
        regex = re.compile(pattern)
    except re.error:
        return None
    return [regex.fullmatch(s) is not None for s in test_strings]


def check_case(case: dict) -> list[str]:
    """Run one test case and return a list of problems (empty on success)."""
    pattern = case["pattern"]
    problems = []

    try:
        result = translate(pattern)
    except TranslationError as e:
        if case.get("error") != e.kind:
            problems.append(f"Unexpected {e.kind}: {e}")
        return problems

    if "error" in case:
        problems.append(f"Expected {case['error']}, got {result!r}")
        return problems

    expected = case.get("expected")
    if expected is not None and result != expected:
        problems.append(f"Translation: expected {expected!r}, got {result!r}")

    if translate(result) != result:
        problems.append("Translation is not idempotent")

    matches = case.get("match", [])
    non_matches = case.get("no_match", [])
    test_strings = matches + non_matches
    if not test_strings:
        return problems

    wanted = [True] * len(matches) + [False] * len(non_matches)
    utf16_results = run_utf16_matches(pattern, test_strings)
    ref_results = run_reference_matches(pattern, test_strings)

    for text, want, got in zip(test_strings, wanted, utf16_results):
        if want != got:
            problems.append(f"{text!r}: expected {'match' if want else 'no match'}")

    if ref_results is not None:
        for text, got, ref in zip(test_strings, utf16_results, ref_results):
            if got != ref:
                problems.append(f"{text!r}: UTF-16={got} vs re={ref}")

    return problems


def run_test(case: dict, verbose: bool = False) -> bool:
    """Run a test case and report the outcome."""
    name = case.get("name", "unnamed")
    pattern = case["pattern"]
    print(f"\n### Testing: {name} ###")
    print(f"Pattern: {pattern[:60]}{'...' if len(pattern) > 60 else ''}")

    problems = check_case(case)
    for problem in problems:
        print(f"  {problem}")

    if verbose and not problems and "error" not in case:
        print(f"  Translation: {translate(pattern)}")

    print("OK" if not problems else "FAILED")
    return not problems


def load_cases(config_path: Path) -> list[dict]:
    """Load test cases from a YAML file (top-level list)."""
    with open(config_path, encoding='utf-8') as f:
        config = yaml.safe_load(f)

    if not isinstance(config, list):
        raise ValueError(f"Expected list in config file, got {type(config).__name__}")
    return config


def main():
    parser = argparse.ArgumentParser(
        description="Test the UTF-32 to UTF-16 regex translator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Config file format (YAML):
- name: test_name
  pattern: '[\\U00010000-\\U0010FFFF]'
  expected: '...'          # exact translation (optional)
  error: InvertedRange     # expected error kind (optional)
  match: ["\\U0001F600"]    # strings that must fully match (optional)
  no_match: ["a"]          # strings that must not match (optional)

Example usage:
    python run_tests.py                     # Run all tests from tests.yaml
    python run_tests.py -c my_tests.yaml    # Run tests from specific file
    python run_tests.py -n empty_class      # Run only the 'empty_class' test
    python run_tests.py -v                  # Verbose output
"""
    )
    parser.add_argument("--config", "-c", default=str(DEFAULT_CONFIG),
                        help="YAML config file with test patterns (default: tests.yaml)")
    parser.add_argument("--name", "-n", help="Run only the test with this name")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--list", "-l", action="store_true", help="List available tests")

    args = parser.parse_args()

    # Load config file
    config_path = Path(args.config)
    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}")
        print("Create a tests.yaml file or specify one with --config")
        sys.exit(1)

    try:
        cases = load_cases(config_path)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.list:
        print(f"Available tests in {config_path}:")
        for case in cases:
            name = case.get("name", "unnamed")
            pattern = case.get("pattern", "")[:40]
            print(f"  - {name}: {pattern}")
        sys.exit(0)

    # Filter by name if specified
    if args.name:
        cases = [c for c in cases if c.get("name") == args.name]
        if not cases:
            print(f"Error: No test named '{args.name}' found")
            sys.exit(1)

    failed = [c.get("name", "unnamed") for c in cases if not run_test(c, args.verbose)]

    if not failed:
        print(f"\n=== ALL {len(cases)} TEST(S) PASSED ===")
    else:
        print(f"\n=== {len(failed)} OF {len(cases)} TEST(S) FAILED: {', '.join(failed)} ===")

    sys.exit(0 if not failed else 1)


if __name__ == "__main__":
    main()
