import pytest

import main


def test_play_presets_parsed(monkeypatch):
    monkeypatch.setattr("sys.argv", [
        "main.py", "play", "--difficulty", "Advanced", "--topic", "Recursion", "--type", "conceptual",
    ])
    args = main.parse_args()
    assert args.cmd == "play"
    assert (args.difficulty, args.topic, args.preference) == ("Advanced", "Recursion", "conceptual")
    assert args.auto_demo is False


def test_play_rejects_unknown_difficulty(monkeypatch):
    monkeypatch.setattr("sys.argv", ["main.py", "play", "--difficulty", "Expert"])
    with pytest.raises(SystemExit):
        main.parse_args()


def test_presets_skip_prompts(monkeypatch):
    started = []
    state = {
        "session_id": "s1",
        "config": {"topic": "Recursion", "difficulty": "Beginner"},
        "challenge": None,
        "errors": {},
    }

    def fake_start(base_url, difficulty, topic, preference):
        started.append((difficulty, topic, preference))
        return state

    monkeypatch.setattr(main, "start_session", fake_start)
    monkeypatch.setattr(main, "end_session", lambda base_url, sid: None)
    prompts = []

    def fake_input(prompt=""):
        prompts.append(prompt)
        return "q"

    monkeypatch.setattr("builtins.input", fake_input)
    main.interactive_play("http://test", "Beginner", "Recursion", "coding")

    assert started == [("Beginner", "Recursion", "coding")]
    # Only the command menu was shown
    assert len(prompts) == 1
