from fastapi import APIRouter, BackgroundTasks, Request
import json
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/webhook")
async def webhook(request: Request, background_tasks: BackgroundTasks):
    """
    Receive a GitHub or GitLab webhook.

    Always answers 200 right away; the review runs in the background and
    its outcome only shows up in the logs and on the pull/merge request.
    """
    body = await request.body()
    try:
        payload = json.loads(body)
    except ValueError:
        logger.info("Received webhook with a non-JSON body, ignoring")
        return {"status": "ignored"}

    gitlab_token = request.headers.get("X-Gitlab-Token")
    logger.info(f"Received webhook event ({'gitlab' if gitlab_token else 'github'} headers)")

    background_tasks.add_task(request.app.state.event_router.dispatch, payload, gitlab_token)
    return {"status": "received"}
