import sys
import json
import logging
import argparse
from typing import Any, Callable, Dict, Optional, Sequence, TextIO

from pydantic import ValidationError

from thunderbird_bridge import formatting
from thunderbird_bridge.config import Settings, get_settings
from thunderbird_bridge.core.router import Router
from thunderbird_bridge.models import PARSE_ERROR, JsonRpcRequest, JsonRpcResponse, loads_strict, salvage_id
from thunderbird_bridge.services.backend_client import BackendClient, BackendError

logger = logging.getLogger("Thunderbird_Bridge")


# ---------------------------------------------------------
# STDIO LOOP
# ---------------------------------------------------------

def process_line(line: str, router: Router) -> Optional[JsonRpcResponse]:
    """
    Handles one line of input. Returns None when nothing must be written
    (blank lines and notifications).
    """
    if not line.strip():
        return None

    # Grab the id before validation so a rejected request can still be answered
    raw_id = salvage_id(line)

    try:
        request = JsonRpcRequest.model_validate(loads_strict(line))
    except ValidationError as e:
        logger.warning(f"Malformed Request: {e.error_count()} validation error(s)")
        detail = e.errors()[0]["msg"] if e.errors() else str(e)
        return JsonRpcResponse.error_response(raw_id, PARSE_ERROR, f"Parse error: {detail}")
    except ValueError as e:
        logger.warning(f"Malformed Request: {e}")
        return JsonRpcResponse.error_response(raw_id, PARSE_ERROR, f"Parse error: {e}")

    return router.dispatch(request)


def write_response(stream: TextIO, response: JsonRpcResponse) -> bool:
    """Writes one response line. Faults go to the log, never to ``stream``."""
    try:
        payload = response.to_json()
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to serialize response: {e}")
        return False

    try:
        stream.write(payload)
        stream.write("\n")
    except (OSError, ValueError) as e:
        logger.error(f"Failed to write response: {e}")
        return False

    try:
        stream.flush()
    except (OSError, ValueError) as e:
        logger.error(f"Failed to flush stdout: {e}")
        return False
    return True


def serve(router: Router, stdin: TextIO, stdout: TextIO) -> None:
    """Reads requests line by line until end of input."""
    try:
        for line in stdin:
            response = process_line(line, router)
            if response is not None:
                write_response(stdout, response)
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"stdin read error: {e}")


# ---------------------------------------------------------
# CLI
# ---------------------------------------------------------

PROG = "thunderbird-bridge"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="MCP stdio bridge and command-line client for the Thunderbird API extension",
    )
    parser.add_argument("--url", help="Extension endpoint (default: THUNDERBIRD_BRIDGE_BACKEND_URL or http://localhost:8766/)")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds")
    parser.add_argument("--log-level", help="Logging level for stderr diagnostics")

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("serve", help="Run the MCP bridge on stdin/stdout (default)")

    call = sub.add_parser("call", help="Call one extension tool and print its result as JSON")
    call.add_argument("tool", help="Tool name, e.g. listAccounts")
    call.add_argument("arguments", nargs="?", default="{}", help="Tool arguments as a JSON object")

    sub.add_parser("accounts", help="List email accounts and identities")

    search = sub.add_parser("search", help="Search messages by subject, sender, or recipient")
    search.add_argument("query", nargs="?", default="")
    search.add_argument("--start-date", help="Filter by start date (ISO)")
    search.add_argument("--end-date", help="Filter by end date (ISO)")
    search.add_argument("--max", type=int, help="Max results (default: 20)")
    search.add_argument("--sort", choices=["asc", "desc"], help="Sort order (default: desc)")

    get = sub.add_parser("get", help="Read a full email message")
    get.add_argument("message_id", nargs="?")
    get.add_argument("folder_path", nargs="?")
    get.add_argument("--save-attachments", action="store_true", help="Save attachments to temp files")

    folders = sub.add_parser("folders", help="List all mail folders")
    folders.add_argument("--account", help="Filter to a specific account")

    update = sub.add_parser("update", help="Update message state")
    update.add_argument("message_id", nargs="?")
    update.add_argument("folder_path", nargs="?")
    update.add_argument("--read", action="store_true", help="Mark as read")
    update.add_argument("--unread", action="store_true", help="Mark as unread")
    update.add_argument("--flag", action="store_true", help="Mark as flagged")
    update.add_argument("--unflag", action="store_true", help="Remove flag")
    update.add_argument("--move-to", help="Move to folder (URI)")
    update.add_argument("--trash", action="store_true", help="Move to trash")

    send = sub.add_parser("send", help="Open a compose window")
    send.add_argument("--to", help="Recipient (required)")
    send.add_argument("--subject", help="Subject line")
    send.add_argument("--body", help="Message body")
    send.add_argument("--cc", help="CC recipients")
    send.add_argument("--bcc", help="BCC recipients")
    send.add_argument("--from", dest="sender", help="Sender identity")
    send.add_argument("--html", action="store_true", help="Body is HTML")

    reply = sub.add_parser("reply", help="Reply to a message")
    reply.add_argument("message_id", nargs="?")
    reply.add_argument("folder_path", nargs="?")
    reply.add_argument("--body", help="Reply body (required)")
    reply.add_argument("--reply-all", action="store_true", help="Reply to all recipients")
    reply.add_argument("--html", action="store_true", help="Body is HTML")
    reply.add_argument("--to", help="Override recipient")
    reply.add_argument("--cc", help="CC recipients")
    reply.add_argument("--from", dest="sender", help="Sender identity")

    forward = sub.add_parser("forward", help="Forward a message")
    forward.add_argument("message_id", nargs="?")
    forward.add_argument("folder_path", nargs="?")
    forward.add_argument("--to", help="Recipient (required)")
    forward.add_argument("--body", help="Additional body text")
    forward.add_argument("--html", action="store_true", help="Body is HTML")
    forward.add_argument("--cc", help="CC recipients")
    forward.add_argument("--from", dest="sender", help="Sender identity")

    contacts = sub.add_parser("contacts", help="Search contacts")
    contacts.add_argument("query", nargs="?", default="")

    sub.add_parser("calendars", help="List calendars")
    return parser


def build_settings(args: argparse.Namespace) -> Settings:
    overrides = {}
    if args.url:
        overrides["backend_url"] = args.url
    if args.timeout is not None:
        overrides["request_timeout"] = args.timeout
    if args.log_level:
        overrides["log_level"] = args.log_level
    if not overrides:
        return get_settings()
    return Settings(**overrides)


class UsageError(Exception):
    """A command was given without its required arguments."""


def _compact(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in arguments.items() if value is not None}


def _call(client: BackendClient, tool: str, arguments: Dict[str, Any]) -> Any:
    """call_tool, also treating an ``{"error": ...}`` result as a failure."""
    result = client.call_tool(tool, _compact(arguments))
    if isinstance(result, dict) and result.get("error"):
        raise BackendError(str(result["error"]))
    return result


def _require_message(args: argparse.Namespace, usage: str) -> None:
    if not args.message_id or not args.folder_path:
        raise UsageError(usage)


def _status_message(result: Any, fallback: str) -> str:
    if isinstance(result, dict) and result.get("message"):
        return str(result["message"])
    return fallback


def cmd_call(client: BackendClient, args: argparse.Namespace) -> int:
    result = client.call_tool(args.tool, args.parsed_arguments)
    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


def cmd_accounts(client: BackendClient, args: argparse.Namespace) -> int:
    formatting.print_accounts(_call(client, "listAccounts", {}))
    return 0


def cmd_search(client: BackendClient, args: argparse.Namespace) -> int:
    result = _call(client, "searchMessages", {
        "query": args.query,
        "startDate": args.start_date,
        "endDate": args.end_date,
        "maxResults": args.max,
        "sortOrder": args.sort,
    })
    formatting.print_messages(result)
    return 0


def cmd_get(client: BackendClient, args: argparse.Namespace) -> int:
    _require_message(args, "get <messageId> <folderPath>")
    result = _call(client, "getMessage", {
        "messageId": args.message_id,
        "folderPath": args.folder_path,
        "saveAttachments": args.save_attachments,
    })
    formatting.print_message(result)
    return 0


def cmd_folders(client: BackendClient, args: argparse.Namespace) -> int:
    formatting.print_folders(_call(client, "listFolders", {"accountId": args.account}))
    return 0


def cmd_update(client: BackendClient, args: argparse.Namespace) -> int:
    _require_message(
        args,
        "update <messageId> <folderPath> [--read|--unread] [--flag|--unflag] [--move-to <uri>] [--trash]",
    )
    arguments: Dict[str, Any] = {"messageId": args.message_id, "folderPath": args.folder_path}
    if args.read:
        arguments["read"] = True
    if args.unread:
        arguments["read"] = False
    if args.flag:
        arguments["flagged"] = True
    if args.unflag:
        arguments["flagged"] = False
    if args.move_to:
        arguments["moveTo"] = args.move_to
    if args.trash:
        arguments["trash"] = True
    result = _call(client, "updateMessage", arguments)
    actions = result.get("actions") if isinstance(result, dict) else None
    print(f"Done: {', '.join(str(action) for action in actions or [])}")
    return 0


def cmd_send(client: BackendClient, args: argparse.Namespace) -> int:
    if not args.to:
        raise UsageError("send --to <addr> [--subject <text>] [--body <text>]")
    result = _call(client, "sendMail", {
        "to": args.to,
        "subject": args.subject or "",
        "body": args.body or "",
        "cc": args.cc,
        "bcc": args.bcc,
        "from": args.sender,
        "isHtml": args.html,
    })
    print(_status_message(result, "Compose window opened."))
    return 0


def cmd_reply(client: BackendClient, args: argparse.Namespace) -> int:
    if not args.message_id or not args.folder_path or not args.body:
        raise UsageError("reply <messageId> <folderPath> --body <text>")
    result = _call(client, "replyToMessage", {
        "messageId": args.message_id,
        "folderPath": args.folder_path,
        "body": args.body,
        "replyAll": args.reply_all,
        "isHtml": args.html,
        "to": args.to,
        "cc": args.cc,
        "from": args.sender,
    })
    print(_status_message(result, "Reply compose window opened."))
    return 0


def cmd_forward(client: BackendClient, args: argparse.Namespace) -> int:
    if not args.message_id or not args.folder_path or not args.to:
        raise UsageError("forward <messageId> <folderPath> --to <addr>")
    result = _call(client, "forwardMessage", {
        "messageId": args.message_id,
        "folderPath": args.folder_path,
        "to": args.to,
        "body": args.body,
        "isHtml": args.html,
        "cc": args.cc,
        "from": args.sender,
    })
    print(_status_message(result, "Forward compose window opened."))
    return 0


def cmd_contacts(client: BackendClient, args: argparse.Namespace) -> int:
    formatting.print_contacts(_call(client, "searchContacts", {"query": args.query}))
    return 0


def cmd_calendars(client: BackendClient, args: argparse.Namespace) -> int:
    formatting.print_calendars(_call(client, "listCalendars", {}))
    return 0


COMMANDS: Dict[str, Callable[[BackendClient, argparse.Namespace], int]] = {
    "call": cmd_call,
    "accounts": cmd_accounts,
    "search": cmd_search,
    "get": cmd_get,
    "folders": cmd_folders,
    "update": cmd_update,
    "send": cmd_send,
    "reply": cmd_reply,
    "forward": cmd_forward,
    "contacts": cmd_contacts,
    "calendars": cmd_calendars,
}


def run_command(client: BackendClient, args: argparse.Namespace) -> int:
    try:
        return COMMANDS[args.command](client, args)
    except UsageError as e:
        print(f"Usage: {PROG} {e}", file=sys.stderr)
        return 1
    except BackendError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = build_settings(args)
    except ValidationError as e:
        parser.error(str(e))

    logging.basicConfig(
        level=settings.log_level,
        stream=sys.stderr,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    if args.command == "call":
        try:
            args.parsed_arguments = loads_strict(args.arguments)
        except ValueError as e:
            parser.error(f"arguments must be JSON: {e}")
        if not isinstance(args.parsed_arguments, dict):
            parser.error("arguments must be a JSON object")

    if args.command in COMMANDS:
        with BackendClient(settings) as client:
            return run_command(client, args)

    # The protocol channel is always UTF-8 regardless of locale
    sys.stdin.reconfigure(encoding="utf-8")
    sys.stdout.reconfigure(encoding="utf-8")

    logger.info(f"--- {settings.app_name} STARTUP --- backend: {settings.backend_url}")
    with BackendClient(settings) as client:
        try:
            serve(Router(client, settings), sys.stdin, sys.stdout)
        except KeyboardInterrupt:
            pass
    logger.info(f"--- {settings.app_name} SHUTDOWN ---")
    return 0


if __name__ == "__main__":
    sys.exit(main())
