"""Sandbox utilities for Daytona-hosted OpenCode docs agents.

Modules:
    daytona  - Async Daytona SDK wrapper (DaytonaClient, RemoteSandbox)
    image    - Image construction (get_opencode_image, build_snapshot_image)
    repos    - Clone-or-pull sync of context repos (sync_repos)
    prompts  - opencode.json + agent prompt rendering (render_bundle)
    opencode - Sandbox variants and the launch/run flow (SandboxLauncher)
    local    - Local volume variants (load_context, serve_local)
    tasks    - Background task handles and signal-driven shutdown
"""
