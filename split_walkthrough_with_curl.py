"""Walk through a bill split against a running server using curl.

Creates a receipt (manually or from an image), adds participants, assigns
every item to everyone and prints what each person owes.
"""

import argparse
import json
import os
import subprocess
from pathlib import Path


def run_curl(args_list: list[str]) -> str:
    curl_bin = "curl.exe" if os.name == "nt" else "curl"

    cmd = [curl_bin, "-sS"] + args_list
    p = subprocess.run(cmd, capture_output=True, text=True)

    if p.returncode != 0:
        print("\n[curl error] command:", " ".join(cmd))
        print("[stdout]:", p.stdout)
        print("[stderr]:", p.stderr)
        raise SystemExit(p.returncode)

    return p.stdout.strip()


def try_parse_json(s: str):
    try:
        return json.loads(s)
    except json.JSONDecodeError:
        return None


def post_json(url: str, payload: dict) -> dict:
    out = run_curl([
        "-X", "POST", url,
        "-H", "Content-Type: application/json",
        "-d", json.dumps(payload),
    ])
    js = try_parse_json(out)
    if js is None or "error" in js:
        print(f"[POST {url}] unexpected response:", out)
        raise SystemExit(1)
    return js


def create_manual_receipt(base_url: str, currency: str) -> dict:
    payload = {
        "currency": currency,
        "title": "Walkthrough dinner",
        "items": [
            {"name": "Pizza", "quantity": 1, "total_price": 10.00},
            {"name": "Lemonade", "quantity": 3, "price_per_item": 2.50},
        ],
    }
    js = post_json(f"{base_url}/receipts", payload)
    print(f"[receipt] ok receipt_id={js['receipt_id']} items={len(js['items'])}")
    return js


def upload_receipt(base_url: str, image_path: str) -> dict:
    img = Path(image_path).expanduser().resolve()
    if not img.exists():
        raise SystemExit(f"Image not found: {img}")

    out = run_curl(["-X", "POST", f"{base_url}/receipts/image", "-F", f"image=@{str(img)}"])
    js = try_parse_json(out)
    if not js or "receipt_id" not in js:
        print("[upload] unexpected response:", out)
        raise SystemExit(1)

    print(f"[upload] ok receipt_id={js['receipt_id']} items={len(js['items'])} image_url={js['image_url']}")
    return js


def add_user(base_url: str, receipt_id: str, name: str) -> dict:
    js = post_json(f"{base_url}/receipts/{receipt_id}/users", {"name": name})
    print(f"[user] ok {name} id={js['user']['id']}")
    return js["user"]


def assign(base_url: str, receipt_id: str, user_id: str, item_ids: list[str]) -> dict:
    js = post_json(f"{base_url}/receipts/{receipt_id}/users/{user_id}/items", {"item_ids": item_ids})
    print(f"[assign] {js['message']}")
    return js


def get_receipt(base_url: str, receipt_id: str) -> dict:
    out = run_curl(["-X", "GET", f"{base_url}/receipts/{receipt_id}"])
    js = try_parse_json(out)
    if js is None:
        print("[get_receipt] non-json response:", out)
        raise SystemExit(1)
    return js


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--base-url", default="http://127.0.0.1:8000", help="Base URL for API")
    ap.add_argument("--image", help="Receipt image to upload; a sample receipt is created when omitted")
    ap.add_argument("--currency", default="USD", help="Currency for the sample receipt")
    ap.add_argument("--users", nargs="+", default=["Alice", "Bob", "Carol"], help="Participant names")
    args = ap.parse_args()

    print("== Bill split walkthrough via curl ==")

    if args.image:
        receipt = upload_receipt(args.base_url, args.image)
    else:
        receipt = create_manual_receipt(args.base_url, args.currency)
    receipt_id = receipt["receipt_id"]
    item_ids = [i["id"] for i in receipt["items"]]

    if not item_ids:
        print("[split] receipt has no items, nothing to split")
        return

    users = [add_user(args.base_url, receipt_id, name) for name in args.users]
    for user in users:
        assign(args.base_url, receipt_id, user["id"], item_ids)

    split = get_receipt(args.base_url, receipt_id)
    currency = split.get("currency") or ""
    print("\n== OWED ==")
    for user in split["users"]:
        print(f"{user['name']:<12} {user['user_total']} {currency}")

    print("\n== WALKTHROUGH COMPLETED ==")


if __name__ == "__main__":
    main()
