#!/usr/bin/env python3
"""lsystem_engine.py

A deterministic, context-free L-system rewriting engine.

Key features:
- Closed grammars: every symbol must carry exactly one production rule.
- Immutable fractal history (each recursion returns a new value).
- Streaming expansion of a single depth without materializing history.
- JSON grammar files and a small CLI for inspecting results.

Run:
  python lsystem_engine.py expand grammar.json --recursions 3
  python lsystem_engine.py describe grammar.json
  python lsystem_engine.py --help
"""

from __future__ import annotations

import argparse
import itertools
import json
import sys
from collections.abc import Generator, Hashable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Union, cast

Symbol = Hashable


# -------------------------
# Errors / Validation
# -------------------------


class LSystemError(ValueError):
    pass


class GrammarError(LSystemError):
    pass


class UnknownSymbolInProductionRules(GrammarError):
    def __init__(self, symbol: Symbol) -> None:
        super().__init__(
            f"Unknown symbol found in production rules: {describe(symbol)}"
        )
        self.symbol = symbol


class UnknownSymbolInAxiom(GrammarError):
    def __init__(self, symbol: Symbol) -> None:
        super().__init__(f"Unknown symbol found in axiom: {describe(symbol)}")
        self.symbol = symbol


class RecursionCountError(LSystemError):
    pass


class InvalidRecursionsCount(RecursionCountError):
    def __init__(self, count: int) -> None:
        super().__init__(f"Recursions count must be non-negative, got {count}")
        self.count = count


class ConfigError(ValueError):
    pass


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


def _as_int(x: Any, path: str) -> int:
    _require(
        isinstance(x, int) and not isinstance(x, bool), f"{path} must be an integer"
    )
    return int(x)


def _as_str(x: Any, path: str) -> str:
    _require(isinstance(x, str), f"{path} must be a string")
    return cast(str, x)


def _as_dict(x: Any, path: str) -> dict[str, Any]:
    _require(isinstance(x, dict), f"{path} must be an object")
    return cast(dict[str, Any], x)


def _check_recursions(count: int) -> None:
    if count < 0:
        raise InvalidRecursionsCount(count)


def describe(symbol: Symbol) -> str:
    """Display name of a symbol: the value of an Enum member, else str()."""
    if isinstance(symbol, Enum):
        return str(symbol.value)
    return str(symbol)


def _names(symbols: Iterable[Symbol], sep: str = ", ") -> str:
    return sep.join(describe(s) for s in symbols)


# -------------------------
# Production rules
# -------------------------


@dataclass(frozen=True)
class Identity:
    """The symbol rewrites to itself."""


@dataclass(frozen=True)
class Produce:
    """The symbol rewrites to an explicit (possibly empty) sequence."""

    symbols: tuple[Symbol, ...]

    def __init__(self, symbols: Iterable[Symbol]) -> None:
        object.__setattr__(self, "symbols", tuple(symbols))


ProductionRule = Union[Identity, Produce]

IDENTITY = Identity()


def apply_rule(rule: ProductionRule, symbol: Symbol) -> tuple[Symbol, ...]:
    if isinstance(rule, Produce):
        return rule.symbols
    return (symbol,)


# -------------------------
# Grammar
# -------------------------


@dataclass(frozen=True)
class Grammar:
    """A closed rule table plus the axiom it starts from.

    Validation runs once here; the rewriting code relies on every symbol
    it meets having a rule.
    """

    rules: Mapping[Symbol, ProductionRule] = field(hash=False)
    axiom: tuple[Symbol, ...]

    def __init__(
        self, rules: Mapping[Symbol, ProductionRule], axiom: Iterable[Symbol]
    ) -> None:
        rules = dict(rules)
        axiom = tuple(axiom)
        _validate(rules, axiom)
        object.__setattr__(self, "rules", MappingProxyType(rules))
        object.__setattr__(self, "axiom", axiom)

    @property
    def symbols(self) -> tuple[Symbol, ...]:
        return tuple(self.rules)

    @property
    def constants(self) -> tuple[Symbol, ...]:
        return tuple(s for s, rule in self.rules.items() if rule == IDENTITY)

    @property
    def variables(self) -> tuple[Symbol, ...]:
        return tuple(s for s, rule in self.rules.items() if rule != IDENTITY)


def _validate(rules: dict[Symbol, ProductionRule], axiom: tuple[Symbol, ...]) -> None:
    for sym, rule in rules.items():
        if not isinstance(rule, (Identity, Produce)):
            raise TypeError(
                f"rule for {describe(sym)!r} must be Identity or Produce, "
                f"got {type(rule).__name__}"
            )

    for rule in rules.values():
        if isinstance(rule, Produce):
            for sym in rule.symbols:
                if sym not in rules:
                    raise UnknownSymbolInProductionRules(sym)

    for sym in axiom:
        if sym not in rules:
            raise UnknownSymbolInAxiom(sym)


# -------------------------
# Iterations / Fractal
# -------------------------


@dataclass(frozen=True)
class Iteration:
    symbols: tuple[Symbol, ...]

    def apply_rules(self, rules: Mapping[Symbol, ProductionRule]) -> Iteration:
        return Iteration(
            tuple(
                itertools.chain.from_iterable(_rewrite(rules, s) for s in self.symbols)
            )
        )

    def __len__(self) -> int:
        return len(self.symbols)


def _rewrite(
    rules: Mapping[Symbol, ProductionRule], symbol: Symbol
) -> tuple[Symbol, ...]:
    rule = rules.get(symbol)
    if rule is None:
        # Grammar validation guarantees closure.
        raise AssertionError(f"no production rule for symbol {describe(symbol)!r}")
    return apply_rule(rule, symbol)


@dataclass(frozen=True)
class Fractal:
    """The rewrite history of an axiom: iterations[k] is the result after k steps."""

    iterations: tuple[Iteration, ...]
    rules: Mapping[Symbol, ProductionRule] = field(compare=False, repr=False)

    @classmethod
    def from_axiom(
        cls, axiom: Iterable[Symbol], rules: Mapping[Symbol, ProductionRule]
    ) -> Fractal:
        return cls(iterations=(Iteration(tuple(axiom)),), rules=rules)

    @property
    def current_iteration(self) -> Iteration:
        return self.iterations[-1]

    @property
    def result(self) -> tuple[Symbol, ...]:
        return self.current_iteration.symbols

    @property
    def depth(self) -> int:
        return len(self.iterations) - 1

    def next_recursion(self) -> Fractal:
        new_iteration = self.current_iteration.apply_rules(self.rules)
        return Fractal(iterations=self.iterations + (new_iteration,), rules=self.rules)

    def __str__(self) -> str:
        lines = ["Axiom:", f"\t{_names(self.iterations[0].symbols)}"]
        for index, iteration in enumerate(self.iterations[1:]):
            lines.append(f"Recursion {index}:")
            lines.append(f"\t{_names(iteration.symbols)}")
        return "\n".join(lines)


# -------------------------
# System
# -------------------------


@dataclass(frozen=True)
class System:
    name: str
    grammar: Grammar
    base_fractal: Fractal = field(init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "base_fractal",
            Fractal.from_axiom(self.grammar.axiom, self.grammar.rules),
        )

    def fractal(self, after_recursions_count: int) -> Fractal:
        _check_recursions(after_recursions_count)
        fractal = self.base_fractal
        for _ in range(after_recursions_count):
            fractal = fractal.next_recursion()
        return fractal

    def recursions(self) -> Iterator[Fractal]:
        """Yield the base fractal and then every further recursion, forever."""
        fractal = self.base_fractal
        while True:
            yield fractal
            fractal = fractal.next_recursion()

    def __str__(self) -> str:
        rules = self.grammar.rules
        rule_text = ", ".join(
            f"({describe(sym)} -> {_names(apply_rule(rules[sym], sym), sep='')})"
            for sym in self.grammar.variables
        )
        return "\n".join(
            [
                f'"{self.name}"',
                f"\tConstants: {_names(self.grammar.constants)}",
                f"\tVariables: {_names(self.grammar.variables)}",
                f"\tAxiom: {_names(self.grammar.axiom)}",
                f"\tRules: {rule_text}",
            ]
        )


# -------------------------
# Streaming expansion
# -------------------------


def stream_expand(grammar: Grammar, depth: int) -> Generator[Symbol, None, None]:
    """Yield the symbols of the depth-``depth`` result in order.

    Uses an explicit stack of (sequence, index, depth) frames, so only the
    rule tables are held in memory, never a full intermediate iteration.
    The depth is checked eagerly, before the first symbol is requested.
    """
    _check_recursions(depth)
    return _stream(grammar, depth)


def _stream(grammar: Grammar, depth: int) -> Generator[Symbol, None, None]:
    rules = grammar.rules
    stack: list[tuple[tuple[Symbol, ...], int, int]] = [(grammar.axiom, 0, 0)]

    while stack:
        seq, i, d = stack.pop()
        if i >= len(seq):
            continue

        sym = seq[i]
        stack.append((seq, i + 1, d))

        rule = rules[sym]
        if d < depth and isinstance(rule, Produce):
            # Pushed after the continuation so the replacement is traversed
            # first, keeping left-to-right order.
            stack.append((rule.symbols, 0, d + 1))
        else:
            yield sym


# -------------------------
# Presets
# -------------------------


class SierpinskiSymbol(Enum):
    DRAW_FORWARD = "drawForward"
    DRAW_FORWARD_2 = "drawForward2"
    TURN_LEFT_120 = "turnLeft120"
    TURN_RIGHT_120 = "turnRight120"


def sierpinski_triangle() -> System:
    f = SierpinskiSymbol.DRAW_FORWARD
    g = SierpinskiSymbol.DRAW_FORWARD_2
    left = SierpinskiSymbol.TURN_LEFT_120
    right = SierpinskiSymbol.TURN_RIGHT_120
    grammar = Grammar(
        rules={
            f: Produce([f, right, g, left, f, left, g, right, f]),
            g: Produce([g, g]),
            left: IDENTITY,
            right: IDENTITY,
        },
        axiom=[f, right, g, right, g],
    )
    return System("Sierpiński triangle", grammar)


# -------------------------
# Config parsing
# -------------------------


@dataclass(frozen=True)
class GrammarConfig:
    name: str
    grammar: Grammar
    recursions: int

    def system(self) -> System:
        return System(self.name, self.grammar)


def _as_symbols(x: Any, path: str) -> list[str]:
    if isinstance(x, str):
        return list(x)
    _require(isinstance(x, list), f"{path} must be a string or a list of strings")
    out: list[str] = []
    for i, sym in enumerate(x):
        out.append(_as_str(sym, f"{path}[{i}]"))
    return out


def parse_config(obj: dict[str, Any]) -> GrammarConfig:
    obj = _as_dict(obj, "root")

    name = _as_str(obj.get("name", "L-System"), "name")

    _require("axiom" in obj, "axiom is required")
    axiom = _as_symbols(obj["axiom"], "axiom")

    recursions = _as_int(obj.get("recursions", 0), "recursions")
    _require(recursions >= 0, "recursions must be >= 0")

    rules_obj = _as_dict(obj.get("rules", {}), "rules")
    rules: dict[str, ProductionRule] = {}
    for k, v in rules_obj.items():
        _require(len(k) > 0, "rules keys must be non-empty strings")
        if v is None:
            rules[k] = IDENTITY
        else:
            rules[k] = Produce(_as_symbols(v, f"rules['{k}']"))

    return GrammarConfig(
        name=name, grammar=Grammar(rules, axiom), recursions=recursions
    )


def load_json(path: str) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        try:
            return cast(dict[str, Any], json.load(f))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e


# -------------------------
# CLI / Help
# -------------------------

HELP_EPILOG = r"""
GRAMMAR JSON SYNTAX

Every command reads a single JSON file describing a deterministic,
context-free L-system.

Top-level keys

  name: string (optional, default "L-System")
      A human-readable title, shown by `describe`.

  axiom: string or list of strings (required)
      The initial word. A string is split into one symbol per character;
      use a list for multi-character symbol names.

  recursions: integer >= 0 (optional, default 0)
      Number of rewriting steps. Overridden by --recursions.

  rules: object mapping symbol -> rule (optional)
      Every symbol used anywhere must have exactly one rule:
        null             the symbol rewrites to itself (a constant)
        "ABA"            the symbol rewrites to A, B, A
        ["A", "B", "A"]  the same, with explicit symbol names
      A symbol missing from rules is an error; it is NOT implicitly kept.

Example (Sierpinski triangle):

    {
      "name": "Sierpinski triangle",
      "axiom": "FRGRG",
      "recursions": 4,
      "rules": {"F": "FRGLFLGRF", "G": "GG", "L": null, "R": null}
    }
"""


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="lsystem-engine",
        description="Deterministic L-system rewriting engine.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=HELP_EPILOG,
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    pe = sub.add_parser(
        "expand",
        help="Print the rewritten word after N recursions.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pe.add_argument("config", help="Path to the grammar JSON file.")
    pe.add_argument(
        "--recursions",
        type=int,
        default=None,
        help="Number of rewriting steps. Default: the file's 'recursions'.",
    )
    pe.add_argument(
        "--separator", default="", help="String printed between symbols."
    )
    pe.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Stop after this many symbols (useful for fast-growing grammars).",
    )

    pd = sub.add_parser(
        "describe",
        help="Print the grammar summary and every iteration up to N.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pd.add_argument("config", help="Path to the grammar JSON file.")
    pd.add_argument(
        "--recursions",
        type=int,
        default=None,
        help="Number of rewriting steps. Default: the file's 'recursions'.",
    )

    pv = sub.add_parser(
        "validate",
        help="Validate a grammar file and print a brief summary.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pv.add_argument("config", help="Path to the grammar JSON file.")

    return p


# -------------------------
# Commands
# -------------------------


def cmd_expand(
    config_path: str, recursions: int | None, separator: str, limit: int | None
) -> None:
    cfg = parse_config(load_json(config_path))
    depth = cfg.recursions if recursions is None else recursions
    _require(limit is None or limit > 0, "--limit must be > 0")

    symbols: Iterable[Symbol] = stream_expand(cfg.grammar, depth)
    if limit is not None:
        # One extra symbol tells us whether the output was cut.
        bounded = list(itertools.islice(symbols, limit + 1))
        truncated = len(bounded) > limit
        symbols = bounded[:limit]
    else:
        truncated = False

    print(_names(symbols, sep=separator))
    if truncated:
        print(
            f"warning: expansion exceeds {limit} symbols; output truncated",
            file=sys.stderr,
        )


def cmd_describe(config_path: str, recursions: int | None) -> None:
    cfg = parse_config(load_json(config_path))
    depth = cfg.recursions if recursions is None else recursions

    system = cfg.system()
    fractal = system.fractal(after_recursions_count=depth)
    print(system)
    print(fractal)


def cmd_validate(config_path: str) -> None:
    cfg = parse_config(load_json(config_path))
    grammar = cfg.grammar

    print(f"name: {cfg.name}")
    print(f"symbols: {len(grammar.symbols)}")
    print(f"constants: {_names(grammar.constants)}")
    print(f"variables: {_names(grammar.variables)}")
    print(f"axiom length: {len(grammar.axiom)}")
    print(f"recursions: {cfg.recursions}")


def main(argv: list[str] | None = None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)

    try:
        if args.cmd == "expand":
            cmd_expand(args.config, args.recursions, args.separator, args.limit)
        elif args.cmd == "describe":
            cmd_describe(args.config, args.recursions)
        elif args.cmd == "validate":
            cmd_validate(args.config)
        else:
            raise AssertionError("unreachable")
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2
    except RecursionCountError as e:
        print(f"Recursions error: {e}", file=sys.stderr)
        return 2
    except LSystemError as e:
        print(f"Grammar error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
