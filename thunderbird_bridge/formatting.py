"""
Human-readable output for the mail commands of the CLI.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def format_date(value: Any) -> str:
    """
    Renders an ISO timestamp (or epoch milliseconds) as ``19 Oct 2026 14:05``.

    Aware timestamps are shown in local time; unparseable values come back as-is.
    """
    if value is None or value == "":
        return ""
    try:
        if isinstance(value, (int, float)):
            moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        else:
            text = str(value)
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            moment = datetime.fromisoformat(text)
    except (ValueError, OverflowError, OSError):
        return str(value)
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.strftime("%d %b %Y %H:%M")


def truncate(text: Optional[str], length: int) -> str:
    if not text:
        return ""
    text = str(text).replace("\n", " ").strip()
    return text[:length - 3] + "..." if len(text) > length else text


def _flag_suffix(msg: Dict[str, Any]) -> str:
    flags = []
    if msg.get("read") is False:
        flags.append("UNREAD")
    if msg.get("flagged"):
        flags.append("FLAGGED")
    return f" [{' '.join(flags)}]" if flags else ""


def print_messages(messages: Optional[List[Dict[str, Any]]]) -> None:
    if not messages:
        print("No messages found.")
        return
    for msg in messages:
        print(f"{format_date(msg.get('date'))}  {truncate(msg.get('author') or msg.get('from'), 30)}")
        print(f"  {msg.get('subject') or '(no subject)'}{_flag_suffix(msg)}")
        print(f"  id: {msg.get('id')}  folder: {msg.get('folderPath') or ''}")
        print("")
    print(f"{len(messages)} message(s)")


def print_message(msg: Dict[str, Any]) -> None:
    print(f"Subject: {msg.get('subject') or '(no subject)'}{_flag_suffix(msg)}")
    print(f"From:    {msg.get('author')}")
    print(f"To:      {msg.get('recipients')}")
    if msg.get("ccList"):
        print(f"CC:      {msg['ccList']}")
    print(f"Date:    {format_date(msg.get('date'))}")
    print(f"ID:      {msg.get('id')}")

    attachments = msg.get("attachments") or []
    if attachments:
        print(f"\nAttachments ({len(attachments)}):")
        for att in attachments:
            size = f" ({att['size'] / 1024:.1f}KB)" if att.get("size") else ""
            path = f" -> {att['filePath']}" if att.get("filePath") else ""
            err = f" [{att['error']}]" if att.get("error") else ""
            print(f"  {att.get('name')}{size}{path}{err}")

    print(f"\n{msg.get('body') or '(empty body)'}")


def print_folders(folders: Optional[List[Dict[str, Any]]]) -> None:
    if not folders:
        print("No folders found.")
        return
    for folder in folders:
        indent = "  " * (folder.get("depth") or 0)
        unread = folder.get("unreadMessages") or 0
        unread_str = f" ({unread} unread)" if unread > 0 else ""
        print(f"{indent}{folder.get('name')}  [{folder.get('totalMessages')} msgs{unread_str}]")
        print(f"{indent}  {folder.get('path')}")


def print_accounts(accounts: Optional[List[Dict[str, Any]]]) -> None:
    if not accounts:
        print("No accounts found.")
        return
    for acc in accounts:
        print(f"{acc.get('name') or acc.get('key')} ({acc.get('type')})")
        for identity in acc.get("identities") or []:
            print(f"  {identity.get('name')} <{identity.get('email')}>")
        print("")


def print_contacts(contacts: Optional[List[Dict[str, Any]]]) -> None:
    if not contacts:
        print("No contacts found.")
        return
    for contact in contacts:
        full_name = " ".join(p for p in (contact.get("firstName"), contact.get("lastName")) if p)
        name = full_name or contact.get("displayName") or ""
        print(f"{name}  <{contact.get('primaryEmail') or ''}>")
    print(f"\n{len(contacts)} contact(s)")


def print_calendars(calendars: Optional[List[Dict[str, Any]]]) -> None:
    if not calendars:
        print("No calendars found.")
        return
    for cal in calendars:
        print(f"{cal.get('name')} ({cal.get('type') or 'unknown'})")
        if cal.get("color"):
            print(f"  color: {cal['color']}")
