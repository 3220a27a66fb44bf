#!/usr/bin/env python3

import subprocess
import sys

def run_tests():
    print("🧪 Running ChunkScribe Tests...")
    print("=" * 50)

    try:
        result = subprocess.run([
            sys.executable, "-m", "pytest", "tests/",
            "-v", "--tb=short", "--color=yes"
        ], capture_output=True, text=True)
    except OSError as e:
        print(f"❌ Error running tests: {e}")
        return False

    print(result.stdout)
    if result.stderr:
        print("Errors:", result.stderr)

    if result.returncode == 0:
        print("\n✅ All tests passed!")
    else:
        print(f"\n❌ Some tests failed (exit code: {result.returncode})")

    return result.returncode == 0

if __name__ == "__main__":
    success = run_tests()
    sys.exit(0 if success else 1)
