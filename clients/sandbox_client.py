"""Client for the sandbox HTTP server.

Usage:
    python clients/sandbox_client.py list
    python clients/sandbox_client.py create svelte
"""

import httpx

from config.utils import get_settings

TIMEOUT = httpx.Timeout(10.0, read=600.0)


def get_base_url() -> str:
    return get_settings().server_url.rstrip("/")


def get_http_client() -> httpx.Client:
    return httpx.Client(base_url=get_base_url(), timeout=TIMEOUT)


def list_available(verbose: bool = True, http: httpx.Client | None = None) -> list[str]:
    """List sandbox names the server can create."""
    http = http or get_http_client()
    response = http.get("/")
    response.raise_for_status()
    result = response.json()

    if verbose:
        print("Available sandboxes:")
        for name in result.get("available", []):
            print(f"  {name}")

    return result.get("available", [])


def create_sandbox(name: str, verbose: bool = True, http: httpx.Client | None = None) -> dict:
    """Ask the server to create a sandbox; returns {"url", "ssh"}.

    Creation takes as long as the sandbox takes to boot, so the read
    timeout is generous.

    Raises:
        ValueError: If the server rejects the name
        httpx.HTTPStatusError: On any other failure
    """
    http = http or get_http_client()
    response = http.post(f"/sandbox/{name}")

    if response.status_code == 400:
        raise ValueError(response.json().get("error"))
    response.raise_for_status()
    result = response.json()

    if verbose:
        print(f"🐚 SSH:   {result['ssh']}")
        print(f"💻 Attach: opencode attach {result['url']}")

    return result


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Sandbox server client")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # list
    subparsers.add_parser("list", help="List sandbox names the server can create")

    # create
    create_parser = subparsers.add_parser("create", help="Create a sandbox")
    create_parser.add_argument("name", help="Repo name")

    args = parser.parse_args()

    if args.command == "list":
        list_available()
    elif args.command == "create":
        try:
            create_sandbox(args.name)
        except ValueError as e:
            print(f"Error: {e}")
    else:
        parser.print_help()
