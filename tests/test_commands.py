from eve_engine.chat.commands import COMMANDS, parse_intent


def test_plain_text_is_chat():
    intent = parse_intent("  hello there ")
    assert intent.action == "chat"
    assert intent.prompt == "hello there"


def test_blank_is_noop():
    assert parse_intent("   ").action == "noop"


def test_lang_command():
    intent = parse_intent("/lang manglish")
    assert intent.action == "set_language"
    assert intent.command_args["value"] == "manglish"


def test_attach_quoted_path():
    intent = parse_intent('/attach "/tmp/my photo.png"')
    assert intent.action == "attach"
    assert intent.command_args["path"] == "/tmp/my photo.png"


def test_attach_unquoted_path_with_spaces():
    intent = parse_intent("/attach /tmp/my photo.png")
    assert intent.command_args["path"] == "/tmp/my photo.png"


def test_addkey_splits_label_and_secret():
    intent = parse_intent("/addkey work laptop AIza123")
    assert intent.action == "add_key"
    assert intent.command_args == {"label": "work laptop", "secret": "AIza123"}


def test_addkey_secret_only():
    intent = parse_intent("/addkey AIza123")
    assert intent.command_args == {"label": "", "secret": "AIza123"}


def test_set_command():
    intent = parse_intent("/set steps 20")
    assert intent.action == "set_setting"
    assert intent.settings_update == {"steps": "20"}
    assert parse_intent("/set steps").settings_update == {}


def test_imagine_with_and_without_text():
    assert parse_intent("/imagine").prompt is None
    intent = parse_intent("/imagine you at the beach")
    assert intent.action == "imagine"
    assert intent.prompt == "you at the beach"


def test_unknown_command():
    intent = parse_intent("/dance now")
    assert intent.action == "unknown"
    assert intent.command_args == {"command": "dance", "arg": "now"}


def test_help_lists_every_command():
    assert "/help" in COMMANDS
    assert "/endpoint" in COMMANDS
    assert parse_intent("/HELP").action == "help"
