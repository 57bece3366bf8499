from __future__ import annotations
import argparse
import json
import sys
from typing import Optional, Dict, Any, List

import requests

from config import configure_logging, get_settings

# -----------------------------
# Config defaults
# -----------------------------
SETTINGS = get_settings()
DEFAULT_BASE_URL = SETTINGS.base_url
API_PREFIX = "/v1/codecrafter"
DIFFICULTIES = ["Beginner", "Intermediate", "Advanced"]
PREFERENCES = ["coding", "conceptual", "either"]

# -----------------------------
# Simple HTTP client helpers
# -----------------------------
class ApiError(Exception):
    def __init__(self, status: int, detail: str):
        super().__init__(f"HTTP {status}: {detail}")
        self.status = status
        self.detail = detail

def _request(method: str, base_url: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    url = f"{base_url.rstrip('/')}{API_PREFIX}{path}"
    # Generation and grading wait on the LLM; allow for slow models
    r = requests.request(method, url, json=payload, timeout=180)
    if r.status_code >= 400:
        try:
            detail = r.json().get("detail", r.text)
        except ValueError:
            detail = r.text[:1000]
        raise ApiError(r.status_code, str(detail))
    if r.status_code == 204 or not r.content:
        return {}
    return r.json()

# -----------------------------
# API wrappers
# -----------------------------
def list_topics(base_url: str) -> List[str]:
    return _request("GET", base_url, "/topics")["topics"]

def suggest_topic(base_url: str, difficulty: str) -> str:
    return _request("POST", base_url, "/topics/suggest", {"difficulty": difficulty})["topic"]

def start_session(base_url: str, difficulty: str, topic: str, preference: str) -> Dict[str, Any]:
    payload = {"difficulty": difficulty, "topic": topic, "type_preference": preference}
    return _request("POST", base_url, "/sessions", payload)

def change_config(base_url: str, session_id: str, **fields: str) -> Dict[str, Any]:
    return _request("PUT", base_url, f"/sessions/{session_id}/config", fields)

def restart(base_url: str, session_id: str) -> Dict[str, Any]:
    return _request("POST", base_url, f"/sessions/{session_id}/restart")

def switch_view(base_url: str, session_id: str, view: str) -> Dict[str, Any]:
    return _request("POST", base_url, f"/sessions/{session_id}/view", {"view": view})

def submit(base_url: str, session_id: str, text: str) -> Dict[str, Any]:
    return _request("POST", base_url, f"/sessions/{session_id}/submit", {"text": text})

def reveal_hint(base_url: str, session_id: str) -> Dict[str, Any]:
    return _request("POST", base_url, f"/sessions/{session_id}/hint")

def reveal_solution(base_url: str, session_id: str) -> Dict[str, Any]:
    return _request("POST", base_url, f"/sessions/{session_id}/solution")

def end_session(base_url: str, session_id: str) -> None:
    _request("DELETE", base_url, f"/sessions/{session_id}")

# -----------------------------
# Pretty printers
# -----------------------------
def print_challenge(state: Dict[str, Any]) -> None:
    cfg = state["config"]
    ch = state.get("challenge")
    print(f"\n===== {cfg.get('topic')} ({cfg.get('difficulty')}) =====")
    if state["errors"].get("generation"):
        print(f"⚠️  {state['errors']['generation']}")
    if not ch:
        print("(no challenge yet)")
        return
    views = ch["available_views"]
    if len(views) > 1:
        print(f"Views:    {' / '.join(v.upper() if v == ch['active_view'] else v for v in views)}")
    print(f"Type:     {ch['active_view']}")
    print(f"\n{ch['question']}")
    if ch.get("hint"):
        print(f"\n💡 Hint: {ch['hint']}")
    print("=" * 32)

def print_grading(state: Dict[str, Any]) -> None:
    g = state.get("grading")
    if state["errors"].get("grading"):
        print(f"\n⚠️  {state['errors']['grading']}")
    if not g:
        return
    print("\n--- AI Feedback ---")
    print(f"Score:  {g['score']}/100  {'✅ Passed' if g['passed'] else '❌ Failed'}")
    print(f"\n{g['feedback']}")

def print_solution(state: Dict[str, Any]) -> None:
    s = state.get("solution")
    if state["errors"].get("solution"):
        print(f"\n⚠️  {state['errors']['solution']}")
    if not s:
        return
    print("\n--- Reference Solution ---")
    print(s["solution"])
    if s.get("explanation"):
        print(f"\n--- Explanation ---\n{s['explanation']}")

def print_state(state: Dict[str, Any]) -> None:
    print("\n===== SESSION STATE =====")
    print(json.dumps(state, indent=2))
    print("=" * 26)

# -----------------------------
# Interactive play loop
# -----------------------------
def _choose(label: str, options: List[str]) -> str:
    for i, opt in enumerate(options, start=1):
        print(f"  {i}. {opt}")
    while True:
        raw = input(f"{label} [1-{len(options)}]: ").strip()
        if raw.isdigit() and 1 <= int(raw) <= len(options):
            return options[int(raw) - 1]
        print("  Please enter one of the numbers above.")

def _read_answer() -> str:
    print("Enter your answer. Finish with a single '.' on its own line.")
    lines: List[str] = []
    while True:
        line = input()
        if line.strip() == ".":
            break
        lines.append(line)
    return "\n".join(lines)

def _pick_topic(base_url: str, difficulty: str) -> str:
    topics = list_topics(base_url)
    choice = _choose("Topic", topics + ["Suggest one for me", "Other (type my own)"])
    if choice == "Suggest one for me":
        topic = suggest_topic(base_url, difficulty)
        print(f"Suggested topic: {topic}")
        return topic
    if choice == "Other (type my own)":
        return input("Custom topic: ").strip()
    return choice

def interactive_play(
    base_url: str,
    difficulty: Optional[str] = None,
    topic: Optional[str] = None,
    preference: Optional[str] = None,
) -> None:
    # Presets from the command line skip the matching prompt
    if not difficulty:
        print("\nChoose a difficulty:")
        difficulty = _choose("Difficulty", DIFFICULTIES)
    if not topic:
        print("\nChoose a topic:")
        topic = _pick_topic(base_url, difficulty)
    if not preference:
        print("\nChoose a question type:")
        preference = _choose("Question type", PREFERENCES)

    print("\n⏳ Generating your challenge...")
    state = start_session(base_url, difficulty, topic, preference)
    sid = state["session_id"]
    print(f"✅ Session started: {sid}")
    print_challenge(state)

    menu = "[a]nswer  [h]int  [s]olution  [v]iew  [r]estart  [d]ifficulty  [t]opic  [p]rint state  [q]uit"
    while True:
        cmd = input(f"\n{menu}\n> ").strip().lower()[:1]
        try:
            if cmd == "a":
                state = submit(base_url, sid, _read_answer())
                print_grading(state)
            elif cmd == "h":
                state = reveal_hint(base_url, sid)
                if state["errors"].get("hint"):
                    print(f"⚠️  {state['errors']['hint']}")
                print_challenge(state)
            elif cmd == "s":
                state = reveal_solution(base_url, sid)
                print_solution(state)
            elif cmd == "v":
                views = (state.get("challenge") or {}).get("available_views", [])
                if len(views) < 2:
                    print("This challenge only has one question.")
                    continue
                current = state["challenge"]["active_view"]
                state = switch_view(base_url, sid, next(v for v in views if v != current))
                print_challenge(state)
            elif cmd == "r":
                print("⏳ Generating a new challenge...")
                state = restart(base_url, sid)
                print_challenge(state)
            elif cmd == "d":
                state = change_config(base_url, sid, difficulty=_choose("Difficulty", DIFFICULTIES))
                print_challenge(state)
            elif cmd == "t":
                difficulty = state["config"]["difficulty"]
                state = change_config(base_url, sid, topic=_pick_topic(base_url, difficulty))
                print_challenge(state)
            elif cmd == "p":
                print_state(state)
            elif cmd == "q":
                end_session(base_url, sid)
                print("👋 Bye!")
                return
            else:
                print("Unknown command.")
        except ApiError as e:
            print(f"⚠️  {e.detail}")

# -----------------------------
# Auto-demo play loop
# -----------------------------
def auto_demo_play(base_url: str) -> None:
    """
    Runs a canned session for quick verification.
    """
    print("\n🤖 Running auto-demo...")
    state = start_session(base_url, "Beginner", "Algorithms: Bubble Sort", "coding")
    sid = state["session_id"]
    print(f"✅ Session started: {sid}")
    print_challenge(state)

    state = reveal_hint(base_url, sid)
    print_challenge(state)

    answer = (
        "def bubble_sort(items):\n"
        "    n = len(items)\n"
        "    for i in range(n):\n"
        "        for j in range(n - i - 1):\n"
        "            if items[j] > items[j + 1]:\n"
        "                items[j], items[j + 1] = items[j + 1], items[j]\n"
        "    return items\n"
    )
    state = submit(base_url, sid, answer)
    print_grading(state)

    state = reveal_solution(base_url, sid)
    print_solution(state)

    print_state(state)
    end_session(base_url, sid)

# -----------------------------
# Run server (programmatically)
# -----------------------------
def run_server(port: int, host: str = "127.0.0.1", reload: bool = True) -> None:
    import uvicorn
    uvicorn.run("api:app", host=host, port=port, reload=reload, log_level=SETTINGS.log_level.lower())

# -----------------------------
# Health checker
# -----------------------------
def health_check(base_url: str) -> None:
    print(f"🔎 Checking server at {base_url} ...")
    try:
        r = requests.get(f"{base_url.rstrip('/')}/docs", timeout=10)
        r.raise_for_status()
        print("✅ /docs reachable")

        topics = list_topics(base_url)
        print(f"✅ JSON API ok ({len(topics)} predefined topics)")
    except (requests.RequestException, ApiError) as e:
        print(f"❌ Health check failed: {e}")
        sys.exit(1)

# -----------------------------
# CLI
# -----------------------------
def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="CodeCrafter: API server + terminal client in one file")

    sub = p.add_subparsers(dest="cmd", required=True)

    ps = sub.add_parser("serve", help="Start the FastAPI server (uvicorn)")
    ps.add_argument("--port", type=int, default=8000, help="Port to bind")
    ps.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind")
    ps.add_argument("--no-reload", action="store_true", help="Disable auto-reload")

    pp = sub.add_parser("play", help="Play a challenge session (interactive or auto)")
    pp.add_argument("--base-url", type=str, default=DEFAULT_BASE_URL, help="API base URL")
    pp.add_argument("--auto-demo", action="store_true", help="Run a canned demo instead of prompting")
    pp.add_argument("--difficulty", choices=DIFFICULTIES, help="Skip the difficulty prompt")
    pp.add_argument("--topic", type=str, help="Skip the topic prompt")
    pp.add_argument("--type", dest="preference", choices=PREFERENCES, help="Skip the question type prompt")

    ph = sub.add_parser("health", help="Check server availability")
    ph.add_argument("--base-url", type=str, default=DEFAULT_BASE_URL, help="API base URL")

    return p.parse_args()

def main() -> None:
    args = parse_args()
    configure_logging(SETTINGS.log_level)

    if args.cmd == "serve":
        run_server(port=args.port, host=args.host, reload=(not args.no_reload))
        return

    if args.cmd == "play":
        try:
            requests.get(f"{args.base_url.rstrip('/')}/docs", timeout=5).raise_for_status()
        except requests.RequestException:
            print("⚠️  Could not reach the server. Is it running?\n"
                  "    Start it in another terminal:\n"
                  "    python main.py serve --port 8000")
            sys.exit(1)

        try:
            if args.auto_demo:
                auto_demo_play(args.base_url)
            else:
                interactive_play(args.base_url, args.difficulty, args.topic, args.preference)
        except ApiError as e:
            print(f"❌ {e}")
            sys.exit(1)
        return

    if args.cmd == "health":
        health_check(args.base_url)
        return

    print("Unknown command. Try: python main.py --help")
    sys.exit(2)

if __name__ == "__main__":
    main()
