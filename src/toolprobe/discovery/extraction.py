"""Pull tool names out of whatever a server printed.

Servers answer discovery in many shapes: a proper JSON-RPC reply, an
OpenAI-style ``functions`` manifest, one JSON object per line, YAML-ish
``name: value`` listings, or just log lines. Each shape has its own strategy,
a pure ``text -> names`` function. The chain tries them from most to least
precise and stops at the first that finds anything.

Example:
    >>> extract_tools('{"jsonrpc":"2.0","id":1,"result":{"tools":[{"name":"ping"}]}}')
    ['ping']
    >>> extract_tools('"name": "sleep"')
    ['sleep']
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Callable

from toolprobe.runtime.observability import Emitter

_DECODER = json.JSONDecoder()

_LINE_NAME = re.compile(r"""["']name["']\s*:\s*["']([^"']+)["']""", re.IGNORECASE)
_FUNCTION_DECL = re.compile(r"""["']?function["']?\s*:\s*["']?([a-zA-Z0-9_]+)["']?""", re.IGNORECASE)
_NAME_DECL = re.compile(r"""["']?name["']?\s*:\s*["']?([^"',\n]+)["']?""", re.IGNORECASE)
_IDENTIFIER = re.compile(r"\b([a-zA-Z]\w+_[a-zA-Z]\w*)\b", re.ASCII)
_NON_IDENT = re.compile(r"[^a-zA-Z0-9_]")


def unique(names: Iterable[str]) -> list[str]:
    """Deduplicate, keeping first-seen order."""
    return list(dict.fromkeys(names))


def iter_json_objects(text: str) -> Iterator[dict[str, Any]]:
    """Yield each complete top-level JSON object embedded in text, left to right.

    Decoding starts at every ``{`` not already consumed by an earlier object.
    Truncated, invalid or too deeply nested fragments are skipped.
    """
    pos = text.find("{")
    while pos != -1:
        try:
            obj, end = _DECODER.raw_decode(text, pos)
        except (ValueError, RecursionError):
            pos = text.find("{", pos + 1)
            continue
        if isinstance(obj, dict):
            yield obj
        pos = text.find("{", end)


def _names_of(entries: object) -> list[str]:
    if not isinstance(entries, list):
        return []
    return [e["name"] for e in entries if isinstance(e, dict) and isinstance(e.get("name"), str) and e["name"]]


# ─────────────────────────────────────────────────────────────────────────────
# Strategies, most precise first
# ─────────────────────────────────────────────────────────────────────────────


def match_json_rpc(text: str) -> list[str]:
    """Names from the first JSON-RPC 2.0 object whose result.tools lists any."""
    for obj in iter_json_objects(text):
        if obj.get("jsonrpc") != "2.0":
            continue
        result = obj.get("result")
        if isinstance(result, dict) and (names := _names_of(result.get("tools"))):
            return names
    return []


def match_function_manifest(text: str) -> list[str]:
    """Names from a ``functions`` list, else a ``tools`` list, else bare ``{"name": ...}`` objects.

    A non-empty list ends the scan; bare named objects seen before it are kept.
    """
    singles: list[str] = []
    for obj in iter_json_objects(text):
        for key in ("functions", "tools"):
            if names := _names_of(obj.get(key)):
                return [*singles, *names]
        if isinstance(name := obj.get("name"), str) and name:
            singles.append(name)
    return singles


def scan_lines(text: str) -> list[str]:
    """Per line mentioning a quoted name key: parse it as JSON, else regex out the value.

    A line that parses but has no top-level string ``name`` contributes nothing.
    """
    names: list[str] = []
    for line in text.splitlines():
        if '"name"' not in line and "'name'" not in line:
            continue
        try:
            data = json.loads(line)
        except (ValueError, RecursionError):
            if m := _LINE_NAME.search(line):
                names.append(m.group(1))
            continue
        if isinstance(data, dict) and isinstance(data.get("name"), str) and data["name"]:
            names.append(data["name"])
    return names


def scan_declarations(text: str) -> list[str]:
    """Values of ``function: x`` and ``name: x`` pairs anywhere in text."""
    found = [m.group(1) for m in _FUNCTION_DECL.finditer(text)]
    found += [v for m in _NAME_DECL.finditer(text) if (v := m.group(1).strip())]
    return unique(found)


def scan_identifiers(text: str, hint: str | None = None) -> list[str]:
    """Every distinct snake_case-looking token. Last resort, low precision.

    With a server id as hint, tokens sharing the server's leading name
    component are listed first.
    """
    tokens = unique(m.group(1) for m in _IDENTIFIER.finditer(text))
    if prefix := _hint_prefix(hint):
        tokens.sort(key=lambda t: not t.lower().startswith(prefix))
    return tokens


def _hint_prefix(hint: str | None) -> str | None:
    if not hint:
        return None
    short = _NON_IDENT.sub("_", hint.rstrip("/").rsplit("/", 1)[-1]).lower()
    head = short.split("_", 1)[0]
    return f"{head}_" if head else None


# ─────────────────────────────────────────────────────────────────────────────
# Chain
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Strategy:
    """A named extraction step."""

    name: str
    label: str
    extract: Callable[..., list[str]]
    uses_hint: bool = False

    def __call__(self, text: str, hint: str | None = None) -> list[str]:
        return self.extract(text, hint=hint) if self.uses_hint else self.extract(text)


STRATEGIES: tuple[Strategy, ...] = (
    Strategy("json-rpc", "JSON-RPC response", match_json_rpc),
    Strategy("function-manifest", "function manifest", match_function_manifest),
    Strategy("line-scan", "line-by-line search", scan_lines),
    Strategy("declarations", "function/name declaration pattern", scan_declarations),
    Strategy("identifiers", "identifier heuristic", scan_identifiers, uses_hint=True),
)


def run_chain(
    text: str,
    *,
    hint: str | None = None,
    emit: Emitter | None = None,
    strategies: tuple[Strategy, ...] = STRATEGIES,
) -> tuple[list[str], Strategy | None]:
    """Apply strategies in order; return the first non-empty result and the strategy that produced it."""
    emit = emit or Emitter()
    for strategy in strategies:
        try:
            names = unique(strategy(text, hint))
        except Exception as e:  # noqa: BLE001 - one broken strategy must not end the chain
            emit.debug(f"{strategy.label} error: {e}", strategy=strategy.name)
            continue
        if names:
            emit.debug(f"Found {len(names)} tools using {strategy.label}", strategy=strategy.name)
            return names, strategy
    return [], None


def extract_tools(text: str, *, hint: str | None = None, emit: Emitter | None = None) -> list[str]:
    """Tool names found in one captured stream; [] if nothing matched."""
    emit = emit or Emitter()
    if not text.strip():
        emit.warning("Server output is empty")
        return []
    names, _ = run_chain(text, hint=hint, emit=emit)
    if not names:
        emit.debug(f"No tools found. Raw output (first 500 chars): {text[:500]}")
    return names


def extract_from_streams(
    stdout: str,
    stderr: str,
    *,
    hint: str | None = None,
    emit: Emitter | None = None,
) -> list[str]:
    """stdout first; stderr only as a separate corpus when stdout yields nothing."""
    emit = emit or Emitter()
    names = extract_tools(stdout, hint=hint, emit=emit.bind(stream="stdout"))
    if names or not stderr.strip():
        return names
    names = extract_tools(stderr, hint=hint, emit=emit.bind(stream="stderr"))
    if names:
        emit.debug(f"Found {len(names)} tools in stderr output")
    return names
