"""Prompts sent to the review service."""
from reviewbot.models.session import ChangedFile, FileSummary


_COMMON_RULES = """Respond in a professional and friendly tone. ONLY comment on the most pressing, important issues. The majority of files will not require any comments at all.
Do not tell the author to check, verify, consider, or ensure things related to code or dependencies; such comments are vague and unhelpful.
Do not make subjective suggestions that are not pertinent to the logic and execution of the code.
Do not comment on configuring or monitoring infrastructure or environments outside of the codebase.
Do not tell the author to verify that the code works. Assume everything added or deleted was intentional and every design decision deliberate.
Assume functions and classes in dependencies or other modules are correct.
Do not ask for docstrings unless the existing ones are wrong, and do not comment on logging.
Never describe the change that was made; that is obvious from where the comment is located.
Only include explicit and objective code-related corrections."""


def file_review_system_prompt(platform: str, path: str, instructions: str = "") -> str:
    """System prompt for reviewing one changed file."""
    request = "merge request" if platform == "gitlab" else "pull request"
    host = "GitLab" if platform == "gitlab" else "GitHub"

    if platform == "gitlab":
        schema = '{ summary: string, comments: [{ start: number, end: number, comment: string, modify_type: "add" | "delete" }] }'
        modify_note = "\nThe 'modify_type' field should say whether the commented code was added or deleted."
    else:
        schema = "{ summary: string, comments: [{ start: number, end: number, comment: string }] }"
        modify_note = ""

    prompt = f"""Generate a review of the changes made in the following file, which is part of a {host} {request}. Consider the file's usage and context within the rest of the codebase to determine whether files that depend on it will be affected.

Respond with a JSON object with the following schema: {schema}.
The 'summary' field should summarize the important changes made in this file, potential pitfalls, and unforeseen consequences, considering the rest of the codebase.
The 'comments' field should list specific and actionable review comments, such as bug fixes or spelling corrections.{modify_note}

{_COMMON_RULES}

The 'start' and 'end' fields are the first and last lines to comment on in the new file (unless the file was deleted). Comment only on the relevant line or lines, not entire sections of the diff. Start and end must be in the same change hunk and must not span more than 20 lines. If the whole file was deleted, make only one comment for the whole file.
If you cannot see the file contents or cannot write a meaningful review, the summary should simply say that there was an error, and you should not write any comments.
Each comment should be extremely short, direct, and to the point. Do not write a comment unless it is extremely valuable.
ONLY comment on {path}. There will be separate opportunities to comment on other changed files."""

    if instructions:
        prompt += f"\n\nAdditional instructions from the repository owner:\n{instructions}"
    return prompt


def number_lines(lines) -> str:
    return "\n".join(f"{i}: {line}" for i, line in enumerate(lines, start=1))


def file_review_user_prompt(
    repository: str,
    source_branch: str,
    target_branch: str,
    title: str,
    body: str,
    file: ChangedFile,
    changed_paths: list[str],
) -> str:
    """User prompt carrying the request metadata, the patch and the numbered file."""
    parts = [
        f"Repository: {repository}",
        f"Request to merge branch `{source_branch}` into branch `{target_branch}`",
        f"Title: {title}",
    ]
    if body:
        parts.append(f"Body: {body}")
    parts.append(f"File name: {file.path}")
    if file.previous_path and file.previous_path != file.path:
        parts.append(f"Previous file name: {file.previous_path}")
    parts.append(f"File status: {file.status}")
    parts.append(f"Other files changed in this request (updates not included below): {', '.join(changed_paths)}")

    return (
        "\n".join(parts)
        + f"\n\nChanges: {file.patch}\n\n"
        + f"File with line numbers:\n\n```\n{number_lines(file.content_lines)}\n```\n"
    )


def overall_prompt(
    repository: str,
    source_branch: str,
    target_branch: str,
    title: str,
    body: str,
    summaries: list[FileSummary],
) -> str:
    """Prompt asking for the short overall comment from per-file summaries."""
    header = f"""Write a very short overall comment for this change request, based on the file change summaries given below. Summarize the changes in order of importance, in no more than 4 short bullet points, to help guide someone through what changed. Optionally add up to 2 bullet points on potential pitfalls, unforeseen consequences or opportunities for code reuse.
Do not include anything generic or vague; everything should be meaningful or immediately actionable. Most summaries will be 1 to 2 bullet points, under 100 words if possible.
Do not tell the author to check, verify, consider, or ensure things. Do not make subjective suggestions. Do not give broad or open-ended tasks to the reviewer.
Only give context on how the changes fit into the larger codebase, if available.

Repository: {repository}
Request to merge branch `{source_branch}` into branch `{target_branch}`
Title: {title}"""
    if body:
        header += f"\nBody: {body}"

    files = "\n\n".join(
        f"File: {s.path} ({s.status})\nSummary of changes: {s.summary}" for s in summaries
    )
    return f"{header}\n\n{files}\n"
