from thunderbird_bridge.formatting import format_date, print_folders, truncate


def test_format_date_naive_iso():
    assert format_date("2026-10-19T14:05:00") == "19 Oct 2026 14:05"


def test_format_date_passes_through_garbage():
    assert format_date("yesterday") == "yesterday"
    assert format_date(None) == ""


def test_truncate():
    assert truncate("short", 10) == "short"
    assert truncate("a\nb", 10) == "a b"
    assert truncate("x" * 40, 30) == "x" * 27 + "..."
    assert truncate(None, 5) == ""


def test_print_folders_indents_by_depth(capsys):
    print_folders([
        {"name": "Inbox", "path": "/INBOX", "depth": 0, "totalMessages": 10, "unreadMessages": 2},
        {"name": "Archive", "path": "/INBOX/Archive", "depth": 1, "totalMessages": 4, "unreadMessages": 0},
    ])

    assert capsys.readouterr().out.splitlines() == [
        "Inbox  [10 msgs (2 unread)]",
        "  /INBOX",
        "  Archive  [4 msgs]",
        "    /INBOX/Archive",
    ]


def test_print_folders_empty(capsys):
    print_folders([])
    assert capsys.readouterr().out == "No folders found.\n"
