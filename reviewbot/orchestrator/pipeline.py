import asyncio
import logging

from reviewbot.agents.reviewer import RequestContext, ReviewClient
from reviewbot.errors import ReviewBotError
from reviewbot.models.review import NormalizedComment
from reviewbot.models.session import ChangedFile, FileSummary
from reviewbot.review.normalizer import normalize

logger = logging.getLogger(__name__)

OVERALL_ERROR_TEXT = "An error occurred while generating the summary comment."


async def review_files(
    reviewer: ReviewClient,
    ctx: RequestContext,
    files: list[ChangedFile],
    concurrency: int = 1,
    use_modify_type: bool = False,
) -> tuple[list[NormalizedComment], list[FileSummary], list[str]]:
    """
    Review every file, at most ``concurrency`` at a time.

    A file whose review fails contributes no comments and no summary; the
    others are unaffected. Output follows the order of ``files``.
    Returns (comments, summaries, failed_paths).
    """
    semaphore = asyncio.Semaphore(concurrency)

    async def review_one(file: ChangedFile):
        async with semaphore:
            return await reviewer.review_file(ctx, file)

    results = await asyncio.gather(*(review_one(f) for f in files), return_exceptions=True)

    comments: list[NormalizedComment] = []
    summaries: list[FileSummary] = []
    failed: list[str] = []
    for file, result in zip(files, results):
        if isinstance(result, Exception):
            if isinstance(result, ReviewBotError):
                logger.error(f"Skipping {file.path}: {result}")
            else:
                logger.exception(f"Unexpected error reviewing {file.path}", exc_info=result)
            failed.append(file.path)
            continue

        comments.extend(normalize(file, result, use_modify_type=use_modify_type))
        summaries.append(FileSummary(path=file.path, status=file.status, summary=result.summary))

    logger.info(f"Reviewed {len(files) - len(failed)}/{len(files)} files, {len(comments)} comments kept")
    return comments, summaries, failed


async def overall_comment(reviewer: ReviewClient, ctx: RequestContext, summaries: list[FileSummary]) -> str:
    """Overall comment text, or a short error note when the service kept failing."""
    try:
        return await reviewer.review_overall(ctx, summaries)
    except ReviewBotError as e:
        logger.error(f"Overall comment failed: {e}")
        return OVERALL_ERROR_TEXT
