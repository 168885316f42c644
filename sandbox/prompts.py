"""OpenCode config and agent prompt templating.

Renders the three files the OpenCode server reads at startup:

    <volume_root>/opencode.json
    <volume_root>/prompts/docs-agent.txt
    <volume_root>/prompts/ask-agent.txt

Everything here is pure string/dict construction; writing to the local
volume is write_bundle(), uploading to a sandbox lives in sandbox.opencode.
"""

import json
from pathlib import Path, PurePosixPath
from typing import Sequence

from pydantic import BaseModel

from config.repos import RepoDescriptor

CONFIG_FILENAME = "opencode.json"
PROMPTS_DIRNAME = "prompts"
DOCS_PROMPT_FILENAME = "docs-agent.txt"
ASK_PROMPT_FILENAME = "ask-agent.txt"

RESPONSE_GUIDELINES = """When responding:

- If something about the question is not clear, ask the user to provide more information
- Really try to keep your responses concise, you don't need tons of examples, just one really good one
- Be extremely concise. Sacrifice grammar for the sake of concision.
- When outputting code snippets, include comments that explain what each piece does
- Always bias towards simple practical examples over complex theoretical explanations
- Give your response in markdown format, make sure to have spacing between code blocks and other content
"""

SVELTE_NOTES = """Special instructions for Svelte:

- always use typescript for svelte code (<script lang="ts">)
- if you are just outputting stuff that goes in the script tag, tag the code as typescript code so the syntax highlighting in the view works correctly (AND DO NOT INCLUDE THE SCRIPT TAG IN THE OUTPUT)
- if you are outputting full svelte files (script, markup, styles), tag the code as html so the syntax highlighting in the view works correctly
- always try to answer the questions by just outputting stuff that goes in the script tag, only include markup and styles if absolutely necessary
"""

# Tool flags per agent; the docs agent can search, the ask agent only browses the web
DOCS_AGENT_TOOLS = {
    "write": False,
    "bash": True,
    "delete": False,
    "read": True,
    "grep": True,
    "glob": True,
    "list": True,
    "path": False,
    "todowrite": False,
    "todoread": False,
    "websearch": True,
}

ASK_AGENT_TOOLS = {
    **{tool: False for tool in DOCS_AGENT_TOOLS},
    "websearch": True,
}

DISABLED_AGENTS = ("build", "general", "codebase-docs-agent", "plan")


class ConfigBundle(BaseModel):
    """The generated config + prompts, with their destination paths."""
    config_path: str
    docs_prompt_path: str
    ask_prompt_path: str
    config: str
    docs_prompt: str
    ask_prompt: str

    def files(self) -> list[tuple[str, str]]:
        """(path, content) pairs in upload order."""
        return [
            (self.docs_prompt_path, self.docs_prompt),
            (self.ask_prompt_path, self.ask_prompt),
            (self.config_path, self.config),
        ]

    @property
    def prompts_dir(self) -> str:
        return str(PurePosixPath(self.docs_prompt_path).parent)


def build_opencode_config(model: str | None = None, docs_bash: str = "ask") -> dict:
    """Build the OpenCode agent config.

    Args:
        model: Model id pinned on both agents (None leaves the server default)
        docs_bash: Permission for shell use by the docs agent ("allow"/"ask"/"deny")

    Returns:
        dict ready for json.dumps
    """
    agents: dict = {name: {"disable": True} for name in DISABLED_AGENTS}

    docs = {
        "prompt": f"{{file:./{PROMPTS_DIRNAME}/{DOCS_PROMPT_FILENAME}}}",
        "disable": False,
        "description": "Get answers about libraries and frameworks by searching their source code",
        "permission": {"webfetch": "ask", "edit": "deny", "bash": docs_bash},
        "mode": "primary",
        "tools": dict(DOCS_AGENT_TOOLS),
    }
    ask = {
        "prompt": f"{{file:./{PROMPTS_DIRNAME}/{ASK_PROMPT_FILENAME}}}",
        "disable": False,
        "description": "Answer coding questions from the user",
        "permission": {"webfetch": "ask", "edit": "deny", "bash": "deny"},
        "mode": "primary",
        "tools": dict(ASK_AGENT_TOOLS),
    }
    if model:
        docs["model"] = model
        ask["model"] = model

    agents["docs"] = docs
    agents["ask"] = ask
    return {"agent": agents}


def docs_agent_prompt(repo_paths: Sequence[tuple[str, str]]) -> str:
    """Prompt for the docs agent listing each (name, path) it can search."""
    plural = len(repo_paths) != 1
    listing = "\n".join(f"- {name}: {path}" for name, path in repo_paths)
    return f"""
You are an expert internal agent who's job is to answer coding questions and provide accurate and up to date info on different technologies, libraries, frameworks, or tools you're using based on the library codebases you have access to.

Currently you have access to the following {"codebases" if plural else "codebase"} at the following {"paths" if plural else "path"}:

{listing}

When asked a question regarding {"one of the codebases" if plural else "the codebase"}, search the codebase to get an accurate answer.

Always search the codebase first before using the web to try to answer the question.

When you are searching the codebase, be very careful that you do not read too much at once. Only read a small amount at a time as you're searching, avoid reading dozens of files at once...

{RESPONSE_GUIDELINES}
{SVELTE_NOTES}"""


def ask_agent_prompt(svelte_notes: bool = True) -> str:
    prompt = f"""
You are an expert internal agent who's job is to answer coding questions from the user.

{RESPONSE_GUIDELINES}"""
    if svelte_notes:
        prompt += f"\n{SVELTE_NOTES}"
    return prompt


def repo_paths(repos: Sequence[RepoDescriptor], repos_dir: str) -> list[tuple[str, str]]:
    return [(repo.name, str(PurePosixPath(repos_dir) / repo.name)) for repo in repos]


def render_bundle(
    repos: Sequence[RepoDescriptor],
    volume_root,
    repos_dirname: str = "repos",
    model: str | None = None,
    docs_bash: str = "ask",
    svelte_notes: bool = True,
) -> ConfigBundle:
    """Render the config and both prompts for a volume root.

    Args:
        repos: Repos the docs agent is told about
        volume_root: Root of the volume (local dir or sandbox path)
        repos_dirname: Subdirectory of volume_root holding the working trees
        model: Optional model pinned on the agents
        docs_bash: Shell permission for the docs agent
        svelte_notes: Append the Svelte instructions to the ask prompt

    Returns:
        ConfigBundle with paths under volume_root and rendered contents
    """
    root = PurePosixPath(str(volume_root))
    prompts_dir = root / PROMPTS_DIRNAME
    repos_dir = str(root / repos_dirname)

    return ConfigBundle(
        config_path=str(root / CONFIG_FILENAME),
        docs_prompt_path=str(prompts_dir / DOCS_PROMPT_FILENAME),
        ask_prompt_path=str(prompts_dir / ASK_PROMPT_FILENAME),
        config=json.dumps(build_opencode_config(model=model, docs_bash=docs_bash), indent=2),
        docs_prompt=docs_agent_prompt(repo_paths(repos, repos_dir)),
        ask_prompt=ask_agent_prompt(svelte_notes=svelte_notes),
    )


def write_bundle(bundle: ConfigBundle) -> list[Path]:
    """Write the bundle to the local filesystem, overwriting previous files."""
    written = []
    for path, content in bundle.files():
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
        written.append(target)
    return written
