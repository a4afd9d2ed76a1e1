"""Command line client for a running wagui server, plus ``serve``.

    wagui serve
    wagui set-state --app shop --app-root /src/shop --mode DEV --context "cart API" --pbi PBI-7
    wagui say dev chat "Implemented the cart endpoint"
    wagui cop PBI-7
    wagui clear

Client commands print the server's JSON reply. A non-2xx reply prints the
server's error to stderr and exits 1.
"""

import argparse
import json
import os
import sys
from typing import Any, Optional, Sequence

import httpx

DEFAULT_BASE_URL = "http://localhost:3099"

MODES = ("DOCS", "ADR", "DEV")
ROLES = ("user", "pm", "architect", "dev")
MESSAGE_TYPES = ("chat", "proposal", "review", "diff", "decision", "system", "context")


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"API error {status_code}: {message}")


def _drop_none(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def api_call(client: httpx.Client, method: str, endpoint: str, body: Optional[dict] = None) -> Any:
    response = client.request(method, f"/api/v1{endpoint}", json=body)
    if response.is_error:
        try:
            message = response.json().get("error") or response.text
        except ValueError:
            message = response.text
        raise ApiError(response.status_code, message)
    return response.json()


def _bool_arg(value: str) -> bool:
    lowered = value.lower()
    if lowered in ("true", "yes", "1"):
        return True
    if lowered in ("false", "no", "0"):
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wagui", description="wagui workflow relay server and client")
    parser.add_argument(
        "--url",
        default=os.environ.get("WAGUI_URL", DEFAULT_BASE_URL),
        help=f"Server base URL (default: $WAGUI_URL or {DEFAULT_BASE_URL})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="Run the server (configured by WAGUI_* variables)")
    sub.add_parser("state", help="Show the current workflow state")

    set_state = sub.add_parser("set-state", help="Set the workflow header; posts a context message")
    set_state.add_argument("--app", required=True, help="Application name")
    set_state.add_argument("--app-root", dest="app_root", help="Absolute path to app root directory")
    set_state.add_argument("--repo", help="Absolute path to repo root")
    set_state.add_argument("--mode", required=True, choices=MODES, help="Current workflow mode")
    set_state.add_argument("--branch", help="Git branch (default: dev)")
    set_state.add_argument("--context", required=True, help="What you are currently doing")
    set_state.add_argument("--pbi", help="Active PBI")
    set_state.add_argument("--task", type=int, help="Current task number")
    set_state.add_argument("--total-tasks", dest="total_tasks", type=int, help="Total tasks in plan")

    say = sub.add_parser("say", help="Send a message; the current header is attached by the server")
    say.add_argument("role", choices=ROLES)
    say.add_argument("type", choices=MESSAGE_TYPES)
    say.add_argument("content")
    say.add_argument("--file", help="Related file path")
    say.add_argument("--task", type=int, help="Related task number")
    say.add_argument("--pbi", help="Related PBI")
    say.add_argument("--approved", type=_bool_arg, help="For reviews: true or false")

    history = sub.add_parser("history", help="Show message history")
    history.add_argument("--limit", type=int, default=50, help="Max messages to return (default: 50)")

    sub.add_parser("clear", help="Clear all messages and reset state; refused until cop passes")

    cop = sub.add_parser("cop", help="Run the completion checklist for a PBI")
    cop.add_argument("pbi", help="PBI being completed")

    gate = sub.add_parser("gate", help="Run lint and tests, streaming progress to the UI")
    gate.add_argument("pbi", help="PBI being completed")

    sub.add_parser("apps", help="List known applications")

    select = sub.add_parser("select", help="Select an application")
    select.add_argument("app")

    return parser


def dispatch(args: argparse.Namespace, client: httpx.Client) -> Any:
    command = args.command
    if command == "state":
        return api_call(client, "GET", "/state")
    if command == "set-state":
        body = _drop_none(
            {
                "app": args.app,
                "appRoot": args.app_root,
                "repo": args.repo,
                "mode": args.mode,
                "branch": args.branch,
                "context": args.context,
                "pbi": args.pbi,
                "task": args.task,
                "totalTasks": args.total_tasks,
            }
        )
        return api_call(client, "POST", "/state", body)
    if command == "say":
        body = _drop_none(
            {
                "role": args.role,
                "type": args.type,
                "content": args.content,
                "file": args.file,
                "task": args.task,
                "pbi": args.pbi,
                "approved": args.approved,
            }
        )
        return api_call(client, "POST", "/messages", body)
    if command == "history":
        return api_call(client, "GET", f"/messages?limit={args.limit}")
    if command == "clear":
        return api_call(client, "DELETE", "/messages")
    if command in ("cop", "gate"):
        return api_call(client, "POST", f"/{command}", {"pbi": args.pbi})
    if command == "apps":
        return api_call(client, "GET", "/apps")
    if command == "select":
        return api_call(client, "POST", "/select", {"app": args.app})
    raise ValueError(f"Unknown command: {command}")


def main(argv: Optional[Sequence[str]] = None, client: Optional[httpx.Client] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        from wagui.main import run

        run()
        return 0

    owns_client = client is None
    if client is None:
        # Cop and gate run the project's lint and tests; allow them time.
        client = httpx.Client(base_url=args.url, timeout=httpx.Timeout(10.0, read=None))
    try:
        result = dispatch(args, client)
    except ApiError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except httpx.HTTPError as exc:
        print(f"Error: cannot reach wagui at {args.url}: {exc}", file=sys.stderr)
        return 1
    finally:
        if owns_client:
            client.close()

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
