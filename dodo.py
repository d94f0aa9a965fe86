# -*- coding: utf-8 -*-
# pydoit task file
# see https://pydoit.org/
# run from this dir with `doit`, or `doit list`, `doit help` etc. (pip install doit 1st)

from doit.action import CmdAction

TEST_HELP = """echo '
{title}
{underline}

Filter Options:
  -k, --keyword TEXT    Only run tests matching the keyword expression
                        Example: -k "reader and not slow"
  -s, --speed TEXT      Filter tests by speed:
                        - "slow": Run only slow tests
                        - "not slow" or "fast": Skip slow tests
                        - "all": Run all tests regardless of speed
  -r, --retry           Only run previously failed tests

Output Options:
  -p, --print-logs      Print test logs to console instead of capturing
  -f, --full-trace      Show full traceback on errors
  -t, --show-time       Display duration of all tests

Examples:
  doit {task}                     # Run all tests
  doit {task} -k decoder          # Run tests containing "decoder"
  doit {task} -s fast -p          # Run fast tests with logs
  doit {task} --retry --show-time # Rerun failed tests with timing
  '"""


def _build_pytest_command(
    test_dir,
    keyword="",
    speed="",
    retry=False,
    print_logs=False,
    full_trace=False,
    show_time=False,
):
    """Helper function to build pytest commands for test tasks."""
    cmd = ["pytest"]

    # Add options
    if print_logs:
        cmd.append("--capture=no")
    if full_trace:
        cmd.append("--full-trace")
    if show_time:
        cmd.append("--durations=0")

    # Add common flags
    cmd.extend(["--color=yes", "-vv", "-x"])

    # Add filters
    if retry:
        cmd.append("--lf")
    if keyword:
        cmd.extend(["-k", keyword])
    if speed:
        if speed == "slow":
            cmd.extend(["-m", "slow"])
        elif speed in ["not slow", "fast"]:
            cmd.extend(["-m", '"not slow"'])
        elif speed == "all":
            pass
        else:
            raise ValueError(
                f"Invalid speed filter: {speed}. Use 'slow', 'not slow', 'fast', or 'all'"
            )

    # Add test directory
    cmd.append(test_dir)

    return " ".join(cmd)


def _test_params():
    return [
        {"name": "help", "long": "help", "default": False, "type": bool},
        {"name": "keyword", "short": "k", "default": ""},
        {"name": "speed", "short": "s", "default": ""},
        {"name": "retry", "short": "r", "default": False, "type": bool},
        {"name": "print_logs", "short": "p", "default": False, "type": bool},
        {"name": "full_trace", "short": "f", "default": False, "type": bool},
        {"name": "show_time", "short": "t", "default": False, "type": bool},
    ]


def _test_task(test_dir, task_name, title):
    def router(keyword, speed, retry, print_logs, full_trace, show_time, help=False):
        if help:
            return TEST_HELP.format(
                title=title, underline="=" * len(title), task=task_name
            )
        try:
            return _build_pytest_command(
                test_dir,
                keyword=keyword,
                speed=speed,
                retry=retry,
                print_logs=print_logs,
                full_trace=full_trace,
                show_time=show_time,
            )
        except ValueError as e:
            return f"echo 'Error: {str(e)}' && exit 1"

    return {
        "actions": [CmdAction(router)],
        "params": _test_params(),
        "verbosity": 2,
    }


def task_install():
    """Install benchlink in editable mode, with test dependencies"""
    return {
        "actions": ["pip install -e .[test]"],
        "verbosity": 2,
    }


def task_test_logic():
    """Run the logic test suite (tests in test/logic/, mock instrument only)."""
    return _test_task("test/logic/", "test_logic", "Test Logic Runner Help")


def task_test_hardware():
    """Run the hardware test suite (tests in test/hardware/, needs BENCHLINK_HOST)."""
    return _test_task("test/hardware/", "test_hardware", "Test Hardware Runner Help")


def task_mock():
    """Serve a mock instrument on localhost:5555 for manual testing."""
    return {
        "actions": ["benchlink --log-to-stdout --log-level DEBUG mock"],
        "verbosity": 2,
    }


def task_format():
    """Format code using ruff."""

    def router(help=False):
        if help:
            return """echo '
Code Formatter Help
=================

This task runs the ruff formatter to ensure consistent code style:
- Sorts imports (ruff check --select I --fix)
- Formats code (ruff format)

Formats src/benchlink/, test/ and dodo.py.

No options required - simply run:
  doit format
  '"""
        return " && ".join(
            f"ruff check --select I --fix {path} && ruff format {path}"
            for path in ("src/benchlink", "test/", "dodo.py")
        )

    return {
        "actions": [CmdAction(router)],
        "params": [
            {"name": "help", "long": "help", "default": False, "type": bool},
        ],
        "verbosity": 2,
    }
