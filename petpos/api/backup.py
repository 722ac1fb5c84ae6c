"""
Backup API Endpoints
Download a full backup, restore from one, wipe the datastore
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from petpos.api.dependencies import PosContext, get_context

router = APIRouter()


@router.get("/export")
def export_backup(context: PosContext = Depends(get_context)):
    """Full backup as a downloadable JSON file"""
    filename = context.backup.backup_filename()
    return Response(
        content=context.backup.export_json(),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import")
async def import_backup(request: Request, context: PosContext = Depends(get_context)):
    """
    Replace all data with the uploaded backup (raw JSON body)

    A malformed file is rejected with 400 and nothing is deleted. Records
    that fail individually are listed in the response.
    """
    body = await request.body()
    result = await run_in_threadpool(context.backup.import_snapshot, body)

    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)

    return {
        "status": "success",
        "message": "Backup restored with errors" if result.is_partial else "Backup restored",
        "data": result.to_dict(),
    }


@router.delete("/all")
def clear_all_data(
    confirm: bool = Query(False, description="Must be true: this deletes every record"),
    context: PosContext = Depends(get_context),
):
    if not confirm:
        raise HTTPException(status_code=400, detail="Pass confirm=true to delete all data")

    context.backup.clear_all()
    return {
        "status": "success",
        "message": "All data deleted",
    }


@router.get("/stats")
def get_dataset_stats(context: PosContext = Depends(get_context)):
    """Record counts and lifetime revenue"""
    return {
        "status": "success",
        "data": context.backup.dataset_stats(),
    }
