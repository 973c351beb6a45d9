import argparse
from pathlib import Path

from playwright.sync_api import sync_playwright

from found.core.config import get_settings

LOGIN_URL = "https://www.linkedin.com/login"


def parse_args() -> Path:
    parser = argparse.ArgumentParser(description="Capture an authenticated LinkedIn session state")
    parser.add_argument(
        "--output",
        help="Where to write the storage state (defaults to LINKEDIN_STORAGE_STATE_PATH)",
        default=None,
    )
    args = parser.parse_args()
    return Path(args.output) if args.output else get_settings().linkedin_storage_state_path


def main() -> None:
    output_path = parse_args()
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with sync_playwright() as p:
        browser = p.chromium.launch(headless=False)
        context = browser.new_context()
        page = context.new_page()
        try:
            page.goto(LOGIN_URL, wait_until="domcontentloaded", timeout=120000)
        except Exception as exc:
            print(f"Warning: navigation timeout ({exc}); please check the browser window.")
        print("Playwright opened LinkedIn. Complete login and any checkpoint, then press Enter...")
        input("Press Enter when your LinkedIn feed is visible")

        context.storage_state(path=str(output_path))
        print(f"Authenticated storage state saved to {output_path}")
        browser.close()


if __name__ == "__main__":
    main()
