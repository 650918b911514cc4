import argparse
import mimetypes
import time
from pathlib import Path

import requests


IMG_EXTS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}


def upload_receipt(session: requests.Session, base_url: str, file_path: Path) -> dict:
    url = f"{base_url}/receipts/image"

    mime, _ = mimetypes.guess_type(str(file_path))
    mime = (mime or "image/jpeg").lower()

    with file_path.open("rb") as f:
        files = {"image": (file_path.name, f, mime)}
        r = session.post(url, files=files, timeout=120)

    if r.status_code != 201:
        raise RuntimeError(f"upload failed: {r.status_code} {r.text}")
    return r.json()


def iter_images(folder: Path):
    for p in sorted(folder.rglob("*")):
        if p.is_file() and p.suffix.lower() in IMG_EXTS:
            yield p


def main():
    ap = argparse.ArgumentParser(description="Upload a folder of receipt images for extraction")
    ap.add_argument("--base-url", default="http://127.0.0.1:8000")
    ap.add_argument("--folder", required=True, help="Folder with receipt images")
    ap.add_argument("--limit", type=int, default=0, help="0 = no limit")
    ap.add_argument("--sleep", type=float, default=0.0, help="Sleep between uploads (seconds)")
    args = ap.parse_args()

    folder = Path(args.folder).expanduser().resolve()
    if not folder.exists():
        raise SystemExit(f"Folder not found: {folder}")

    sess = requests.Session()
    uploaded = []
    empty = 0
    failures = 0

    for i, img in enumerate(iter_images(folder), start=1):
        if args.limit and i > args.limit:
            break

        try:
            resp = upload_receipt(sess, args.base_url, img)
            rid = resp["receipt_id"]
            n_items = len(resp.get("items") or [])
            print(f"[upload] {i:04d} id={rid} file={img.name} items={n_items} ocr={'yes' if resp.get('ocr_text') else 'no'}")
            uploaded.append((rid, img))
            if n_items == 0:
                empty += 1
        except (requests.RequestException, RuntimeError, KeyError) as e:
            failures += 1
            print(f"[ERROR] file={img} err={e}")

        if args.sleep > 0:
            time.sleep(args.sleep)

    print("\n=== SUMMARY ===")
    print(f"uploaded: {len(uploaded)}")
    print(f"without items: {empty}")
    print(f"failures: {failures}")
    if uploaded:
        print("first 10 receipt_ids:", [rid for rid, _ in uploaded[:10]])


if __name__ == "__main__":
    main()
