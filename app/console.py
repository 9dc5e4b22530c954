# ruff: noqa: E501
# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: command line front end for CryptoGuard. analyse a pasted address, compare two addresses
character by character, manage the trust list, show the recent history, or start the local API.
the terminal output is coloured when colorama is available and plain otherwise.

exit codes: 0 ok, 1 input too short to analyse, 2 usage error (argparse), 3 hashing unavailable.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import argparse  # for parsing command line arguments
import logging  # for wiring the cryptoguard.* loggers to the terminal
import sys  # for stderr and exit codes

from agent.integrity_check import HashingUnavailable
from algorithm.analyzer import Analysis, unlock_hint
from algorithm.diff import diff, identical, mismatch_positions
from algorithm.fingerprint import cell_style
from dashboard.app import build_analyzer, run_dashboard
from dashboard.config import Config, load_config

EXIT_OK = 0
EXIT_MALFORMED = 1
EXIT_HASHING_UNAVAILABLE = 3

# palette hex -> closest ANSI foreground, for drawing grid cells in a terminal
_ANSI_FOR_HEX = {
    "#ef4444": "\x1b[31m",  # red
    "#22c55e": "\x1b[32m",  # green
    "#eab308": "\x1b[33m",  # yellow
    "#3b82f6": "\x1b[34m",  # blue
    "#a855f7": "\x1b[35m",  # purple
    "#ec4899": "\x1b[95m",  # pink
    "#06b6d4": "\x1b[36m",  # cyan
    "#f97316": "\x1b[91m",  # orange
}


_colorama_ready = False


def _colors() -> dict[str, str]:
    # use ANSI color codes if available (Windows via colorama), otherwise plain text
    global _colorama_ready
    try:
        from colorama import init as _colorama_init

        if not _colorama_ready:  # init wraps stdout, only do it once
            _colorama_init()
            _colorama_ready = True
        return {
            "red": "\x1b[31m",
            "green": "\x1b[32m",
            "cyan": "\x1b[36m",
            "mag": "\x1b[35m",
            "dim": "\x1b[2m",
            "bold": "\x1b[1m",
            "reset": "\x1b[0m",
        }
    except Exception:
        return dict.fromkeys(("red", "green", "cyan", "mag", "dim", "bold", "reset"), "")


def print_banner() -> None:
    c = _colors()
    print(
        f"{c['dim']}┌──────────────────────────────────────────┐{c['reset']}\n"
        f"{c['dim']}│{c['reset']}{c['cyan']}{c['bold']}        C R Y P T O   G U A R D           {c['reset']}{c['dim']}│{c['reset']}\n"
        f"{c['dim']}│{c['reset']}{c['mag']}   check every character before you send  {c['reset']}{c['dim']}│{c['reset']}\n"
        f"{c['dim']}└──────────────────────────────────────────┘{c['reset']}"
    )


def setup_logging(level: str = "INFO") -> None:
    # message-only output for our loggers, library noise stays quiet
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger("cryptoguard")
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.propagate = False
    logging.getLogger("waitress").setLevel(logging.CRITICAL)
    logging.getLogger("werkzeug").setLevel(logging.ERROR)


def render_grid(analysis: Analysis) -> str:
    c = _colors()
    lines = []
    for row in analysis.fingerprint.grid:
        cells = []
        for value in row:
            colour, dimmed, shrunk = cell_style(value)
            glyph = "▪" if shrunk else "■"
            ansi = _ANSI_FOR_HEX.get(colour, "") if c["reset"] else ""
            cells.append(f"{c['dim'] if dimmed else ''}{ansi}{glyph}{c['reset']}")
        lines.append(" ".join(cells))
    return "\n".join(lines)


def render_analysis(analysis: Analysis, unlock_chars: int = 3) -> str:
    c = _colors()
    check = analysis.check
    status = (
        f"{c['red']}SUSPICIOUS{c['reset']}" if check.is_suspicious else f"{c['green']}shape ok{c['reset']}"
    )
    out = [
        f"network:     {check.network.value}",
        f"status:      {status}",
        f"trust score: {analysis.trust_score}%" + (" (trusted)" if analysis.is_trusted else ""),
        # middle highlighted, prefix and suffix dimmed
        f"address:     {c['dim']}{check.prefix}{c['reset']}{c['red']}{c['bold']}{check.middle}{c['reset']}{c['dim']}{check.suffix}{c['reset']}",
        f"tokens:      {' '.join(analysis.fingerprint.tokens)}",
        render_grid(analysis),
        f"to copy, type the last {unlock_chars} characters: ...{unlock_hint(check.address, unlock_chars)}",
    ]
    return "\n".join(out)


def render_diff(reference: str, candidate: str, ignore_case: bool) -> str:
    c = _colors()
    cells = diff(reference, candidate, ignore_case)
    chars = []
    for cell in cells:
        shown = cell.char or "·"  # placeholder where the candidate is shorter
        if cell.is_match:
            chars.append(f"{c['green']}{shown}{c['reset']}")
        else:
            chars.append(f"{c['red']}{c['bold']}[{shown}]{c['reset']}")
    bad = mismatch_positions(cells)
    if identical(reference, candidate):
        verdict = f"{c['green']}IDENTICAL{c['reset']}"
    elif not bad:
        verdict = f"{c['green']}MATCH (ignoring case){c['reset']}"
    else:
        verdict = f"{c['red']}ADDRESSES DIFFER at positions {', '.join(str(i) for i in bad)}{c['reset']}"
    return "".join(chars) + "\n" + verdict


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cryptoguard", description="CryptoGuard address verification")
    parser.add_argument("--no-banner", action="store_true", help="do not print the banner")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("analyze", help="classify and fingerprint an address")
    p.add_argument("address")

    p = sub.add_parser("diff", help="compare a reference address with a pasted one")
    p.add_argument("reference")
    p.add_argument("candidate")
    p.add_argument("--ignore-case", action="store_true", help="compare case-insensitively")

    p = sub.add_parser("trust", help="add an address to the trust list")
    p.add_argument("address")
    p.add_argument("--label", default=None)

    p = sub.add_parser("untrust", help="remove an address from the trust list")
    p.add_argument("address")

    sub.add_parser("history", help="show recently analysed addresses")
    sub.add_parser("serve", help="start the local JSON API")
    return parser


def main(argv: list[str] | None = None, cfg: Config | None = None) -> int:
    args = _build_parser().parse_args(argv)
    cfg = cfg or load_config()
    setup_logging(cfg.log_level)
    if not args.no_banner:
        print_banner()

    if args.command == "serve":
        run_dashboard(cfg)
        return EXIT_OK

    if args.command == "diff":
        print(render_diff(args.reference, args.candidate, args.ignore_case))
        return EXIT_OK

    analyzer = build_analyzer(cfg)
    store = analyzer.store

    if args.command == "analyze":
        try:
            analysis = analyzer.submit(args.address)
        except HashingUnavailable as e:
            print(f"BLOCKED: {e}", file=sys.stderr)
            return EXIT_HASHING_UNAVAILABLE
        if analysis is None:
            print(f"input too short to analyse (need at least {cfg.min_input_len} characters)", file=sys.stderr)
            return EXIT_MALFORMED
        print(render_analysis(analysis, cfg.unlock_chars))
        return EXIT_OK

    if args.command == "trust":
        entry = store.set_trusted(args.address.strip(), args.label)
        print(f"trusted {args.address.strip()}" + (f" ({entry.label})" if entry.label else ""))
        return EXIT_OK

    if args.command == "untrust":
        removed = store.unset_trusted(args.address.strip())
        print("removed" if removed else "not in trust list")
        return EXIT_OK

    # history
    rows = store.history()
    if not rows:
        print("no addresses analysed yet")
    for check in rows:
        flag = "!" if check.is_suspicious else " "
        print(f"{flag} {check.network.value:<18} {check.address}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
