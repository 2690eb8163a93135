from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from fastapi.responses import RedirectResponse

from src.dependencies import get_click_recorder, get_link_service
from src.shortener.clicks import ClickContext, ClickRecorder
from src.shortener.service import LinkService

router = APIRouter(tags=["redirect"])


@router.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)


@router.get("/{alias}")
async def redirect_to_original(
    alias: str,
    request: Request,
    background_tasks: BackgroundTasks,
    service: LinkService = Depends(get_link_service),
    recorder: ClickRecorder = Depends(get_click_recorder),
):
    resolved = await service.resolve(alias)
    # recorded after the response is sent; failures there never affect the redirect
    background_tasks.add_task(recorder.record_safely, resolved.link, ClickContext.from_request(request))
    return RedirectResponse(url=resolved.destination, status_code=302)
