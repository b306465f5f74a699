#!/usr/bin/env python3
"""
Terminal console for the commit log API.

Runs one command from the command line or an interactive prompt:

    python scripts/tap_console.py tap log
    python scripts/tap_console.py brew commit '"Salud!"' --alias ana
    python scripts/tap_console.py            # interactive
"""

import argparse
import os
import re
import sys
from typing import Dict, List, Optional

import requests

DEFAULT_API_URL = os.getenv("TAP_API_URL", "http://localhost:8000")
CONSOLE_BEER = "choco-mint"
LOG_LIMIT = 6

COMMAND_HELP = [
    'brew commit "message" --alias username',
    "tap log               # muestra los últimos commits",
    "tap status            # resumen de pendientes/aprobados",
    "tap review            # ver pendientes",
    "tap approve <hash> <secret> # aprobar un commit (admin)",
    "about                 # info del proyecto",
    "exit                  # salir",
]

ABOUT = "Last Commit by Azul Malta: mensajes cerveceros convertidos en commits. Deja el tuyo y compártelo."
USAGE_COMMIT = 'brew commit "message" --alias username'

APPROVE_PATTERN = re.compile(r"^tap\s+approve\s+([a-zA-Z0-9]+)(?:\s+(.+))?", re.IGNORECASE)
COMMIT_PATTERN = re.compile(r'^brew\s+commit\s+"([^"]+)"(?:\s+--alias\s+([^\s]+))?', re.IGNORECASE)


class TapConsole:
    """Interprets console commands against the HTTP API."""

    def __init__(self, api_url: str = DEFAULT_API_URL, session: Optional[requests.Session] = None,
                 timeout: float = 10.0):
        self.api_url = api_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch_commits(self) -> List[Dict]:
        try:
            response = self.session.get(f"{self.api_url}/api/commit", timeout=self.timeout)
            data = response.json()
        except (requests.RequestException, ValueError):
            return []
        return data if isinstance(data, list) else []

    def _post(self, path: str, payload: Dict):
        response = self.session.post(f"{self.api_url}{path}", json=payload, timeout=self.timeout)
        try:
            data = response.json()
        except ValueError:
            data = {}
        return response.ok, data

    def handle(self, command: str) -> str:
        """Run one console command and return the text to print."""
        command = command.strip()
        lower = command.lower()

        if not command:
            return ""

        if lower == "help":
            return "\n".join(COMMAND_HELP)

        if lower in ("about", "azul about"):
            return ABOUT

        if lower == "tap status":
            return self.status()

        if lower in ("tap log", "git log"):
            return self.log()

        if lower == "tap review":
            return self.review()

        approve_match = APPROVE_PATTERN.match(command)
        if approve_match:
            return self.approve(approve_match.group(1), approve_match.group(2))

        commit_match = COMMIT_PATTERN.match(command)
        if commit_match:
            return self.commit(commit_match.group(1), commit_match.group(2))

        if lower.startswith("brew commit"):
            return f"Formato inválido. Usa: {USAGE_COMMIT}\nTip: escribe 'help' para más comandos."

        return f"Comando no reconocido: {command}\nTip: ejecuta 'help' para ver opciones."

    def status(self) -> str:
        commits = self.fetch_commits()
        if not commits:
            return 'Sin commits aún. Corre `brew commit "mensaje" --alias tu_nombre`.'
        approved = sum(1 for c in commits if c.get("status") == "approved")
        pending = sum(1 for c in commits if c.get("status") == "pending")
        latest = commits[0]
        return (
            f"Commits aprobados: {approved}\nPendientes: {pending}\n"
            f"Último: {latest['hash']} ({latest['tap']}) por {latest['alias']}"
        )

    def log(self) -> str:
        commits = self.fetch_commits()
        if not commits:
            return "Aún no hay log cervecero. Usa `brew commit` para estrenar."
        return "\n".join(
            f"• {c['hash']} [{c['tap']}] {c['alias']} ({c['status']})" for c in commits[:LOG_LIMIT]
        )

    def review(self) -> str:
        pending = [c for c in self.fetch_commits() if c.get("status") == "pending"]
        if not pending:
            return "No hay commits pendientes."
        lines = [f"• {c['hash']} {c['alias']} [{c['tap']}] (En moderación)" for c in pending]
        return "Pendientes:\n" + "\n".join(lines)

    def approve(self, commit_hash: str, secret: Optional[str]) -> str:
        if not commit_hash or len(commit_hash) < 3:
            return "Hash inválido. Usa: tap approve <hash> <secret>\nTip: escribe 'help' para más comandos."
        if not secret:
            return f"⚠️ Se requiere secreto de administrador.\nUso: tap approve {commit_hash} <tu_secreto>"

        try:
            ok, data = self._post("/api/approve", {"hash": commit_hash, "secret": secret.strip()})
        except requests.RequestException:
            return "Error de conexión al intentar aprobar."

        if ok:
            return f"✅ Commit {commit_hash} aprobado y publicado exitosamente."
        return f"❌ Error: {data.get('error') or 'No se pudo aprobar.'}"

    def commit(self, message: str, alias: Optional[str]) -> str:
        message = (message or "").strip()
        alias = (alias or "").strip()
        if not message:
            return f"Falta el message. Usa: {USAGE_COMMIT}\nTip: escribe 'help' para más comandos."
        if not alias:
            return f"Falta el alias. Usa: {USAGE_COMMIT}\nTip: escribe 'help' para más comandos."

        try:
            ok, data = self._post("/api/commit", {"message": message, "alias": alias, "beer": CONSOLE_BEER})
        except requests.RequestException:
            return "Fallo la conexión al bar. Intenta de nuevo en unos segundos."

        if not ok:
            return data.get("error") or "No pudimos fermentar este commit."
        commit_hash = data.get("hash")
        return f"commit {commit_hash} en revisión. Usa 'tap approve {commit_hash} <secret>' para publicarlo."


def _join_argv(words: List[str]) -> str:
    # Re-quote the argument that holds spaces so `brew commit "a b"` survives the shell
    return " ".join(f'"{w}"' if " " in w and not w.startswith('"') else w for w in words)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Last Commit console")
    parser.add_argument(
        "--api-url",
        default=DEFAULT_API_URL,
        help=f"Commit log API base URL (default: {DEFAULT_API_URL})"
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Command to run; starts an interactive prompt when omitted"
    )

    args = parser.parse_args(argv)
    console = TapConsole(api_url=args.api_url)

    if args.command:
        print(console.handle(_join_argv(args.command)))
        return 0

    print("Last Commit console. Escribe 'help' para ver los comandos.")
    while True:
        try:
            line = input("$ ")
        except (EOFError, KeyboardInterrupt):
            print()
            return 0
        if line.strip().lower() in ("exit", "quit"):
            return 0
        output = console.handle(line)
        if output:
            print(output)


if __name__ == "__main__":
    sys.exit(main())
