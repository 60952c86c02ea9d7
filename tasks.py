from pathlib import Path
from invoke import task
import botocore
import shutil
import os
import json
from collections import Counter


APP_NAME = "lockrenewer"
BUILD_DIR = Path(os.getenv("BUILD_DIR", "dist"))
BIN_NAME = APP_NAME


def _echo(ctx, cmd: str) -> None:
    ctx.run(cmd, echo=True)


def _analyze_bandit_report(report_path: Path) -> bool:
    """Print a summary of a Bandit JSON report. Returns True if no HIGH findings."""
    with open(report_path, "r", encoding="utf-8") as f:
        report = json.load(f)

    results = report.get("results", [])
    if not results:
        print("   ✅ No security issues found!")
        return True

    severity_counts = Counter(r.get("issue_severity", "UNDEFINED") for r in results)
    print(f"   🔍 Total findings: {len(results)}")
    for severity in ["HIGH", "MEDIUM", "LOW"]:
        count = severity_counts.get(severity, 0)
        if count:
            print(f"   {severity.capitalize()}: {count}")

    test_counts = Counter(r.get("test_name", "unknown") for r in results)
    print("   📋 Top issues:")
    for test_name, count in test_counts.most_common(5):
        print(f"      • {test_name}: {count}")

    return severity_counts.get("HIGH", 0) == 0


@task
def clean(ctx):
    if BUILD_DIR.exists():
        shutil.rmtree(BUILD_DIR)


@task(help={"k": "Only run tests matching this expression"})
def test(ctx, k: str = ""):
    """Run the pytest suite."""
    select = f" -k '{k}'" if k else ""
    _echo(ctx, f"python3 -m pytest tests{select}")


@task
def security_scan(ctx):
    """Run Bandit over the package and fail on HIGH severity findings."""
    print("\n🛡️  Running Bandit security analysis...")
    reports_dir = BUILD_DIR / "security"
    reports_dir.mkdir(parents=True, exist_ok=True)
    report_path = reports_dir / "bandit.json"

    # Bandit exits non-zero when it finds anything; the report decides.
    ctx.run(
        f"python3 -m bandit -r {APP_NAME} main.py -f json -o {report_path}",
        warn=True,
    )
    if not report_path.exists():
        raise SystemExit(f"Bandit report not generated at {report_path}")

    if not _analyze_bandit_report(report_path):
        raise SystemExit("❌ Bandit found high severity issues.")
    print("✅ Security scan passed.")


@task(
    help={
        "distdir": "Output directory (default: dist)",
    }
)
def build_bin(ctx, distdir: str = "dist"):
    botocore_path = botocore.__path__[0]
    data_path = Path(botocore_path) / "data"
    add_data_arg = f'--add-data "{data_path}{os.pathsep}botocore/data"'
    _echo(
        ctx,
        f"python3 -m PyInstaller -F -n {BIN_NAME} main.py --distpath {distdir} {add_data_arg}",
    )
