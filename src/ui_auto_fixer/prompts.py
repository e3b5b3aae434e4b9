"""
Prompt Builders

Text prompts for proposal generation, test file generation and the two
fix variants (general/compilation and runtime).
"""

import json
from typing import Any, Dict, Optional


def _context_json(relevant_parts: Any) -> str:
    return json.dumps(relevant_parts if relevant_parts is not None else {}, indent=2)


def get_test_proposal_prompt(relevant_parts: Dict[str, Any]) -> str:
    """Prompt asking for a JSON array of UI test proposals."""
    return f"""# UI Test Proposals for a VS Code Extension

You are an expert test proposal generator for VS Code extensions.

## Objective
Analyze the extension context (package.json) below and propose UI tests that give strong coverage.

## Extension Context
```json
{_context_json(relevant_parts)}
```

## Output Requirements
Return **only valid JSON** and nothing else.
- The root must be a JSON array.
- Each element is an object with exactly these keys:
  - "category": string - UI area or functional group (e.g. "views", "commands", "panels", "dialogs")
  - "test-name": string - concise, descriptive identifier in camelCase
  - "description": string - what the test verifies
  - "cover": array of strings - features, commands or code areas covered

## Guidance
- "category" is the UI area, **not** the testing level (unit/integration/UI).
- Propose as many distinct, meaningful test ideas as possible.
- Every idea must be realistic for VS Code UI interactions.

## Example
[
  {{
    "category": "commands",
    "test-name": "runHelloWorldCommand",
    "description": "Runs the Hello World command from the palette and checks the notification.",
    "cover": ["extension.helloWorld"]
  }}
]
"""


def get_test_file_content_prompt(proposal: Any, relevant_parts: Dict[str, Any]) -> str:
    """Prompt asking for a complete ExTester test file implementing one proposal."""
    cover = ", ".join(proposal.cover)
    return f"""# Generate an ExTester Test File

You are a TypeScript test file generator specialized in the ExTester framework for VS Code extensions.

## Test Proposal
- Name: {proposal.test_name}
- Category: {proposal.category}
- Description: {proposal.description}
- Coverage Areas: {cover}

## Extension Context
```json
{_context_json(relevant_parts)}
```

## Requirements
Output **only** the full TypeScript test file content (no explanations, no markdown).

The test file must:
- Import from `vscode-extension-tester` (VSBrowser, WebDriver, Workbench, ...)
- Follow ExTester async/await style
- Contain realistic UI interactions and assertions for the coverage areas
- Include `before` / `after` sections as needed
- Contain one `it()` block implementing the scenario
- Use `chai.expect` for assertions
- Compile and run as-is

## Template
import {{ VSBrowser, WebDriver, Workbench }} from 'vscode-extension-tester';
import {{ expect }} from 'chai';

describe('{proposal.category} - {proposal.test_name}', () => {{
    let driver: WebDriver;
    let workbench: Workbench;

    before(async function() {{
        this.timeout(30000);
        driver = VSBrowser.instance.driver;
        workbench = new Workbench();
    }});

    it('{proposal.description}', async function() {{
        this.timeout(20000);
        // Implement based on coverage areas: {cover}
    }});

    after(async () => {{
    }});
}});
"""


def _failure_input(failing_output: str, file_path: Optional[str], current_content: Optional[str],
                   relevant_parts: Dict[str, Any]) -> str:
    sections = [f"## Failure Output\n```\n{failing_output}\n```"]
    if file_path:
        sections.append(f"Failing file path: {file_path}")
    if current_content:
        sections.append(f"## Current Test File\n```typescript\n{current_content}\n```")
    sections.append(f"## Extension Context\n```json\n{_context_json(relevant_parts)}\n```")
    return "\n\n".join(sections)


def get_fix_failing_test_prompt(failing_output: str, relevant_parts: Dict[str, Any],
                                file_path: Optional[str] = None,
                                current_content: Optional[str] = None) -> str:
    """General fix prompt, used for compilation-only failures."""
    return f"""# Fix This Failing ExTester Test

You are a TypeScript test fixer for the ExTester framework used in VS Code UI testing.

{_failure_input(failing_output, file_path, current_content, relevant_parts)}

## Task
- Diagnose the likely cause from the output and the current content.
- Rewrite the full TypeScript file with a corrected, stable version of the test.
- Keep valid imports for `vscode-extension-tester` and common assertion libraries.
- The result must compile and follow ExTester conventions.

Return **only** the full corrected TypeScript test file content, with no markdown or explanations.
"""


def get_fix_runtime_failure_prompt(failing_output: str, relevant_parts: Dict[str, Any],
                                   file_path: Optional[str] = None,
                                   current_content: Optional[str] = None) -> str:
    """Runtime fix prompt: timeouts, missing elements, WebDriver errors, flakiness."""
    return f"""# Fix This Runtime ExTester Failure

You are a TypeScript test fixer for the ExTester framework used in VS Code UI testing.

The test compiles and runs but fails at runtime (timeouts, missing elements, flakiness, navigation issues, WebDriver errors).

{_failure_input(failing_output, file_path, current_content, relevant_parts)}

## Requirements
- Wait until the Workbench is ready before interacting with it.
- Open the correct view or panel (ActivityBar, SideBarView, ViewControl) before selecting elements.
- Use stable locators; avoid brittle text matches.
- Add explicit waits with sensible timeouts for elements and state transitions.
- Retry flaky steps (re-find and re-click).
- Trigger required activation events or commands before assertions.
- Limit imports to `vscode-extension-tester` and `chai.expect`.
- Keep the scenario intact.

Return only the full corrected TypeScript test file content, no markdown, no extra text.
"""
