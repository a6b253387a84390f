#!/usr/bin/env python3
"""Password, PIN, token and passphrase generator with a small local vault.

All randomness comes from the ``secrets`` CSPRNG. The last generated value is
kept in last.txt so it can be saved to the vault or analyzed afterwards;
both files are written with 0600 permissions.

Usage:
    daybook-genpass [length]                   # Strong password (default 16)
    daybook-genpass pin|alpha|alnum|hex|base64 [length]
    daybook-genpass uuid
    daybook-genpass token [prefix]
    daybook-genpass passphrase [words] [--sep -]
    daybook-genpass batch <type> [count] [length]
    daybook-genpass save <name>                # Save last generated value
    daybook-genpass vault | get <name> | delete <name>
    daybook-genpass strength [password]
"""

import base64
import logging
import math
import secrets
import string
import sys
import uuid
from pathlib import Path
from typing import Optional

from daybook.config import now_local, tool_dir
from daybook.errors import NotFoundError, ValidationError
from daybook.store import JsonStore, atomic_write_text
from daybook.utils import CLIParser, add_command, make_logger, parse_cli, parse_int, run_cli

LOWER = string.ascii_lowercase
UPPER = string.ascii_uppercase
DIGITS = string.digits
SPECIAL_SAFE = "!@#%^*_+-="
HEX = "0123456789abcdef"

WORDS = [
    "apple", "banana", "orange", "grape", "lemon", "mango", "cherry", "peach",
    "ocean", "river", "mountain", "forest", "desert", "island", "valley", "meadow",
    "tiger", "eagle", "dolphin", "wolf", "falcon", "panther", "cobra", "hawk",
    "crystal", "thunder", "shadow", "diamond", "silver", "golden", "cosmic", "stellar",
    "brave", "swift", "silent", "wild", "bright", "dark", "noble", "fierce",
    "castle", "bridge", "tower", "garden", "harbor", "canyon", "glacier", "volcano",
    "rocket", "comet", "nebula", "quasar", "photon", "laser", "plasma", "fusion",
    "cipher", "matrix", "vector", "quantum", "binary", "neural", "crypto", "omega",
    "storm", "flame", "frost", "spark", "blaze", "surge", "pulse", "wave",
    "quest", "voyage", "venture", "mission", "journey", "odyssey", "saga", "legend",
    "anchor", "compass", "beacon", "lantern", "prism", "mirror", "echo", "whisper",
    "zenith", "apex", "summit", "pinnacle", "vertex", "peak", "crest", "crown",
]

DEFAULT_LENGTHS = {
    "password": 16,
    "pin": 6,
    "alpha": 16,
    "alnum": 16,
    "hex": 32,
    "base64": 32,
    "passphrase": 4,
}
KINDS = ("password", "pin", "alpha", "alnum", "hex", "base64", "uuid", "token", "passphrase")
SECRET_MODE = 0o600

log = logging.getLogger(__name__)


def vault_store() -> JsonStore:
    return JsonStore(tool_dir("genpass") / "vault.json", {"secrets": []}, mode=SECRET_MODE)


def last_path() -> Path:
    return tool_dir("genpass") / "last.txt"

# =============================================================================
# Generators
# =============================================================================

def from_charset(length: int, charset: str) -> str:
    return "".join(secrets.choice(charset) for _ in range(length))


def generate_password(length: int = 16) -> str:
    """Random password; 8+ characters guarantee one of each character class."""
    if length < 1:
        raise ValidationError(f"Invalid length: {length}")
    all_chars = LOWER + UPPER + DIGITS + SPECIAL_SAFE
    if length < 8:
        return from_charset(length, all_chars)
    chars = [
        secrets.choice(LOWER),
        secrets.choice(UPPER),
        secrets.choice(DIGITS),
        secrets.choice(SPECIAL_SAFE),
    ] + [secrets.choice(all_chars) for _ in range(length - 4)]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def generate_base64(length: int = 32) -> str:
    raw = base64.b64encode(secrets.token_bytes(length * 3 // 4 + 3)).decode()
    return raw[:length]


def generate_token(prefix: Optional[str] = None) -> str:
    token = from_charset(32, LOWER + UPPER + DIGITS)
    return f"{prefix}_{token}" if prefix else token


def generate_passphrase(word_count: int = 4, separator: str = "-") -> str:
    """Random words, each capitalized with probability 1/2, plus a 2-digit number."""
    if word_count < 1:
        raise ValidationError(f"Invalid word count: {word_count}")
    words = []
    for _ in range(word_count):
        word = secrets.choice(WORDS)
        if secrets.randbelow(2):
            word = word.capitalize()
        words.append(word)
    words.append(f"{secrets.randbelow(100):02d}")
    return separator.join(words)


def generate(kind: str, length: Optional[int] = None, prefix: Optional[str] = None,
             separator: str = "-") -> str:
    if kind not in KINDS:
        raise ValidationError(f"Unknown type: {kind} (choose from {', '.join(KINDS)})")
    if length is None:
        length = DEFAULT_LENGTHS.get(kind)
    if length is not None and length < 1:
        raise ValidationError(f"Invalid length: {length}")

    if kind == "password":
        return generate_password(length)
    if kind == "pin":
        return from_charset(length, DIGITS)
    if kind == "alpha":
        return from_charset(length, LOWER + UPPER)
    if kind == "alnum":
        return from_charset(length, LOWER + UPPER + DIGITS)
    if kind == "hex":
        return from_charset(length, HEX)
    if kind == "base64":
        return generate_base64(length)
    if kind == "uuid":
        return str(uuid.uuid4())
    if kind == "token":
        return generate_token(prefix)
    return generate_passphrase(length, separator)


def remember(value: str) -> None:
    atomic_write_text(last_path(), value + "\n", SECRET_MODE)


def last_generated() -> Optional[str]:
    path = last_path()
    if not path.exists():
        return None
    return path.read_text().rstrip("\n")

# =============================================================================
# Vault
# =============================================================================

def mask(value: str) -> str:
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}****{value[-4:]}"


def save_secret(name: str) -> bool:
    """Store the last generated value under name. Returns True if it replaced one."""
    name = name.strip()
    if not name:
        raise ValidationError("Usage: genpass save <name>")
    value = last_generated()
    if value is None:
        raise NotFoundError("No secret to save. Generate one first.")
    with vault_store().transaction() as data:
        replaced = any(s["name"] == name for s in data["secrets"])
        data["secrets"] = [s for s in data["secrets"] if s["name"] != name]
        data["secrets"].append({
            "name": name,
            "value": value,
            "created": now_local().strftime("%Y-%m-%d %H:%M:%S"),
        })
    log.info("saved secret %s%s", name, " (replaced)" if replaced else "")
    return replaced


def list_secrets() -> list:
    with vault_store().read() as data:
        return data["secrets"]


def get_secret(name: str) -> str:
    for secret in list_secrets():
        if secret["name"] == name:
            return secret["value"]
    raise NotFoundError(f"Secret '{name}' not found")


def delete_secret(name: str) -> None:
    with vault_store().transaction() as data:
        if not any(s["name"] == name for s in data["secrets"]):
            raise NotFoundError(f"Secret '{name}' not found")
        data["secrets"] = [s for s in data["secrets"] if s["name"] != name]
    log.info("deleted secret %s", name)

# =============================================================================
# Strength
# =============================================================================

def analyze_strength(password: str) -> dict:
    """Character classes, entropy estimate and a coarse rating."""
    classes = {
        "lower": any(c in LOWER for c in password),
        "upper": any(c in UPPER for c in password),
        "digit": any(c in DIGITS for c in password),
        "special": any(not c.isascii() or not c.isalnum() for c in password),
    }
    pool = 26 * classes["lower"] + 26 * classes["upper"] + 10 * classes["digit"] + 32 * classes["special"]
    length = len(password)
    entropy = length * math.log2(pool) if pool else 0.0
    score = sum(classes.values())

    if length >= 16 and score >= 4:
        rating = "EXCELLENT"
    elif length >= 12 and score >= 3:
        rating = "STRONG"
    elif length >= 8 and score >= 3:
        rating = "GOOD"
    elif length >= 8 and score >= 2:
        rating = "FAIR"
    else:
        rating = "WEAK"

    return {
        "length": length,
        "classes": classes,
        "pool": pool,
        "entropy": round(entropy, 2),
        "rating": rating,
    }

# =============================================================================
# CLI
# =============================================================================

def build_parser() -> CLIParser:
    parser = CLIParser(prog="daybook-genpass", description="Secure password and token generator")
    subparsers = parser.add_subparsers(dest="verb", metavar="command")

    # password and the simple charset generators
    for kind, aliases in (
        ("password", ["pass", "pw"]),
        ("pin", []),
        ("alpha", []),
        ("alnum", ["alphanumeric"]),
        ("hex", []),
        ("base64", ["b64"]),
    ):
        sub = add_command(subparsers, kind, aliases=aliases, help=f"Generate a {kind} value")
        sub.add_argument("length", nargs="?", help=f"Length (default: {DEFAULT_LENGTHS[kind]})")

    # uuid
    add_command(subparsers, "uuid", aliases=["guid"], help="Generate a UUID v4")

    # token
    token_parser = add_command(subparsers, "token", aliases=["api"], help="Generate an API-style token")
    token_parser.add_argument("prefix", nargs="?", help="Optional prefix (prefix_<token>)")

    # passphrase
    phrase_parser = add_command(subparsers, "passphrase", aliases=["phrase", "words"], help="Generate a passphrase")
    phrase_parser.add_argument("length", nargs="?", help="Number of words (default: 4)")
    phrase_parser.add_argument("--sep", default="-", help="Word separator (default: -)")

    # batch
    batch_parser = add_command(subparsers, "batch", help="Generate several values")
    batch_parser.add_argument("type", nargs="?", default="password", help="Value type")
    batch_parser.add_argument("count", nargs="?", default="5", help="How many (default: 5)")
    batch_parser.add_argument("length", nargs="?", help="Length")

    # save
    save_parser = add_command(subparsers, "save", help="Save the last generated value")
    save_parser.add_argument("name", help="Vault entry name")

    # vault
    add_command(subparsers, "vault", aliases=["list"], help="List saved secrets (masked)")

    # get
    get_parser = add_command(subparsers, "get", aliases=["retrieve"], help="Print a saved secret")
    get_parser.add_argument("name", help="Vault entry name")

    # delete
    delete_parser = add_command(subparsers, "delete", aliases=["remove", "rm"], help="Delete a saved secret")
    delete_parser.add_argument("name", help="Vault entry name")

    # strength
    strength_parser = add_command(subparsers, "strength", aliases=["analyze"], help="Analyze password strength")
    strength_parser.add_argument("password", nargs="?", help="Password (default: last generated)")

    return parser


def run(args) -> int:
    if args.command in ("password", "pin", "alpha", "alnum", "hex", "base64", "passphrase"):
        length = parse_int(args.length, "length", minimum=1) if args.length else None
        if args.command == "password" and length is not None and length < 8:
            print("Warning: Passwords under 8 characters are weak", file=sys.stderr)
        value = generate(args.command, length, separator=getattr(args, "sep", "-"))
        remember(value)
        print(value)

    elif args.command in ("uuid", "token"):
        value = generate(args.command, prefix=getattr(args, "prefix", None))
        remember(value)
        print(value)

    elif args.command == "batch":
        kind = {"pass": "password", "phrase": "passphrase"}.get(args.type, args.type)
        count = parse_int(args.count, "count", minimum=1)
        length = parse_int(args.length, "length", minimum=1) if args.length else None
        values = [generate(kind, length) for _ in range(count)]
        print(f"=== Generating {count} {kind}s ===")
        print()
        for i, value in enumerate(values, start=1):
            print(f"  {i:2d}. {value}")
        remember(values[-1])

    elif args.command == "save":
        if save_secret(args.name):
            print(f"Warning: '{args.name}' already exists. Overwriting.", file=sys.stderr)
        print(f"Saved to vault as '{args.name}'")

    elif args.command == "vault":
        stored = list_secrets()
        print("=== Secret Vault ===")
        print()
        if not stored:
            print("Vault is empty.")
            print("Save a secret with: daybook-genpass save <name>")
            return 0
        for secret in stored:
            print(f"  {secret['name']}")
            print(f"    Created: {secret['created']}")
            print(f"    Value: {mask(secret['value'])}")
            print()
        print("Retrieve with: daybook-genpass get <name>")

    elif args.command == "get":
        print(get_secret(args.name))

    elif args.command == "delete":
        delete_secret(args.name)
        print(f"Deleted '{args.name}' from vault")

    elif args.command == "strength":
        password = args.password or last_generated()
        if not password:
            raise ValidationError("Usage: genpass strength <password>")
        result = analyze_strength(password)
        labels = (("lower", "Lowercase"), ("upper", "Uppercase"), ("digit", "Numbers"), ("special", "Special characters"))
        print("=== Password Strength Analysis ===")
        print()
        print(f"  Password: {mask(password)}")
        print(f"  Length: {result['length']} characters")
        print()
        print("  Character types:")
        for key, label in labels:
            print(f"    {'[x]' if result['classes'][key] else '[ ]'} {label}")
        print()
        print(f"  Entropy: ~{result['entropy']} bits")
        print(f"  Rating: {result['rating']}")

    return 0


def main(argv=None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)
    # A bare number is a password length
    if argv and argv[0].isdigit():
        argv.insert(0, "password")
    args = parse_cli(build_parser(), argv, default="password")
    return run_cli(lambda: run(args), make_logger("genpass"))


if __name__ == "__main__":
    sys.exit(main())
