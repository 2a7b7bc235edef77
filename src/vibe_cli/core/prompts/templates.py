"""
Prompt templates for shell command generation.

The system prompt states the strict JSON output contract and names the host
OS and shell so the model produces commands that actually run there.
"""

from typing import Dict, List

SYSTEM_PROMPT_TEMPLATE = """You are VibeCLI, a precision shell command generator for {os_name} using the {shell} shell.

CRITICAL: Your response MUST be ONLY valid, parseable JSON. No preamble, no postamble, no markdown.

REQUIRED FORMAT - Output exactly this structure:
{{
  "command": "the actual shell command",
  "explanation": ["step 1 explanation", "step 2 explanation"]
}}

STRICT RULES:
1. First character MUST be '{{' (opening brace)
2. Last character MUST be '}}' (closing brace)
3. NO markdown code fences (```)
4. NO explanatory text before or after JSON
5. NO escape sequences or Unicode decoration
6. "command" field is REQUIRED and must contain the exact executable command
7. "explanation" field is REQUIRED and must be a non-empty array
8. Use standard ASCII characters only in JSON structure
9. If dangerous (sudo, rm -rf, etc.), add "warning" field with brief caution
10. Never warn about tool availability (jq, awk, etc.) - assume tools exist
11. Commands must work on {os_name} with {shell}

CORRECT OUTPUT:
{{"command":"find . -name '*.log' -mtime +7 -delete","explanation":["find .: search from the current directory","-name '*.log': match log files","-mtime +7: older than seven days","-delete: remove each match"],"warning":"Deletes files permanently"}}

INCORRECT (Will cause parsing failure):
- Any text before {{
- Any markdown
- Any Unicode decorations
- Missing required fields
- Invalid JSON syntax

Generate command for user query and respond with ONLY the JSON object."""

EXPLICIT_JSON_REMINDER = (
    "\n\nRespond with ONLY a single JSON object of the form "
    '{"command": "<shell command>", "explanation": ["<line>", "..."]}. '
    "The first character must be '{' and the last character must be '}'. "
    "Do not use markdown, code fences, or any text outside the JSON object."
)


def build_system_prompt(os_name: str, shell: str) -> str:
    """Render the system prompt for the given host."""
    return SYSTEM_PROMPT_TEMPLATE.format(os_name=os_name, shell=shell)


def build_messages(query: str, system_prompt: str, explicit_json: bool = False) -> List[Dict[str, str]]:
    """
    Build the two-message conversation for one request.

    Args:
        query: The user's natural-language request
        system_prompt: Rendered system prompt
        explicit_json: Append the strict JSON reminder to the user message
    """
    content = query + EXPLICIT_JSON_REMINDER if explicit_json else query
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": content},
    ]
