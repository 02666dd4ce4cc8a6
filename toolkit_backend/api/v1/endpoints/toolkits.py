"""
Toolkit inventory endpoints:
  POST   /toolkits/add-toolkit                                 – Insert stock (create or merge)
  GET    /toolkits/get-toolkits                                – List all toolkits
  GET    /toolkits/get-toolkit/{toolkit_id}                    – Get one toolkit
  PUT    /toolkits/update-toolkit/{toolkit_id}                 – Update details / reconcile variants
  DELETE /toolkits/delete-toolkit/{toolkit_id}                 – Delete a toolkit
  PUT    /toolkits/update-variant/{toolkit_id}/{variant_id}    – Update one variant
  DELETE /toolkits/delete-variant/{toolkit_id}/{variant_id}    – Delete one variant
  PUT    /toolkits/reduce-stock/{toolkit_id}/{variant_id}      – Hand stock out of a variant
  GET    /toolkits/stock-history/{toolkit_id}/{variant_id}     – Variant ledger (newest first)
  GET    /toolkits/toolkit-stock-history/{toolkit_id}          – Ledgers of all variants
  GET    /toolkits/search-toolkits?q=                          – Search toolkits by name
  GET    /toolkits/stock-report/pdf                            – Download a PDF stock report

Every JSON response uses the envelope ``{status, success, message, data}``.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import StreamingResponse
import logging

from toolkit_backend.core.dependencies import db_dependency, notifier_dependency
from toolkit_backend.models.toolkit import InsertOutcome
from toolkit_backend.schemas.envelope import ApiResponse
from toolkit_backend.schemas.toolkit import (
    ReduceStockRequest,
    ToolkitCreate,
    ToolkitResponse,
    ToolkitStockHistoryResponse,
    ToolkitUpdate,
    VariantStockHistoryResponse,
    VariantUpdate,
)
from toolkit_backend.services.pdf_service import PDFService
from toolkit_backend.services.toolkit_service import ToolkitService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/toolkits", tags=["Toolkits"])


def _toolkit(toolkit) -> ToolkitResponse:
    return ToolkitResponse.model_validate(toolkit)


@router.post(
    "/add-toolkit",
    response_model=ApiResponse[ToolkitResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Insert stock for a toolkit",
)
def add_toolkit(
    data: ToolkitCreate,
    response: Response,
    conn=Depends(db_dependency),
    notifier=Depends(notifier_dependency),
):
    """
    Insert stock for a toolkit.

    - Unknown name (case-insensitive) → a new toolkit is created (**201**).
    - Known name, new (size, color) → a variant is added (**200**).
    - Known name and variant → stock is merged into it (**200**).
    """
    logger.info("Inserting stock for toolkit name=%s", data.name)
    service = ToolkitService(conn, notifier)
    toolkit, outcome = service.add_toolkit(data)
    if outcome is InsertOutcome.CREATED:
        return ApiResponse.ok("Toolkit created successfully", _toolkit(toolkit), status.HTTP_201_CREATED)
    response.status_code = status.HTTP_200_OK
    return ApiResponse.ok("Toolkit stock updated successfully", _toolkit(toolkit))


@router.get(
    "/get-toolkits",
    response_model=ApiResponse[list[ToolkitResponse]],
    summary="List all toolkits",
)
def get_toolkits(
    conn=Depends(db_dependency),
    notifier=Depends(notifier_dependency),
):
    """Return every toolkit, newest first."""
    logger.info("Listing toolkits")
    service = ToolkitService(conn, notifier)
    toolkits = [_toolkit(t) for t in service.list_toolkits()]
    return ApiResponse.ok("Toolkits retrieved successfully", toolkits)


@router.get(
    "/search-toolkits",
    response_model=ApiResponse[list[ToolkitResponse]],
    summary="Search toolkits by name",
)
def search_toolkits(
    q: Optional[str] = Query(None, description="Case-insensitive name fragment"),
    conn=Depends(db_dependency),
    notifier=Depends(notifier_dependency),
):
    """Return toolkits whose name contains ``q``. A missing or blank ``q`` is a 400."""
    logger.info("Searching toolkits q=%s", q)
    service = ToolkitService(conn, notifier)
    toolkits = [_toolkit(t) for t in service.search_toolkits(q)]
    return ApiResponse.ok("Search completed successfully", toolkits)


@router.get(
    "/stock-report/pdf",
    summary="Download stock report as PDF",
    response_class=StreamingResponse,
)
def stock_report_pdf(
    conn=Depends(db_dependency),
    notifier=Depends(notifier_dependency),
):
    """Render every toolkit with its variants and status counts as a PDF."""
    logger.info("Generating stock report PDF")
    service = ToolkitService(conn, notifier)
    pdf_buffer = PDFService().generate_stock_report(service.list_toolkits())
    return StreamingResponse(
        pdf_buffer,
        media_type="application/pdf",
        headers={"Content-Disposition": "attachment; filename=stock_report.pdf"},
    )


@router.get(
    "/get-toolkit/{toolkit_id}",
    response_model=ApiResponse[ToolkitResponse],
    summary="Get a toolkit",
)
def get_toolkit(
    toolkit_id: str,
    conn=Depends(db_dependency),
    notifier=Depends(notifier_dependency),
):
    """Return the full toolkit document including every variant's ledger."""
    logger.info("Fetching toolkit id=%s", toolkit_id)
    service = ToolkitService(conn, notifier)
    return ApiResponse.ok("Toolkit retrieved successfully", _toolkit(service.get_toolkit(toolkit_id)))


@router.put(
    "/update-toolkit/{toolkit_id}",
    response_model=ApiResponse[ToolkitResponse],
    summary="Update a toolkit",
)
def update_toolkit(
    toolkit_id: str,
    data: ToolkitUpdate,
    conn=Depends(db_dependency),
    notifier=Depends(notifier_dependency),
):
    """
    Update name and type, and optionally reconcile the variant list.

    When ``variants`` is supplied: entries with an ``id`` update that variant,
    entries without one are added, and variants not listed are removed.
    """
    logger.info("Updating toolkit id=%s", toolkit_id)
    service = ToolkitService(conn, notifier)
    toolkit = service.update_toolkit(toolkit_id, data)
    return ApiResponse.ok("Toolkit updated successfully", _toolkit(toolkit))


@router.delete(
    "/delete-toolkit/{toolkit_id}",
    response_model=ApiResponse[ToolkitResponse],
    summary="Delete a toolkit",
)
def delete_toolkit(
    toolkit_id: str,
    conn=Depends(db_dependency),
    notifier=Depends(notifier_dependency),
):
    """Delete a toolkit together with its variants and their history."""
    logger.info("Deleting toolkit id=%s", toolkit_id)
    service = ToolkitService(conn, notifier)
    toolkit = service.delete_toolkit(toolkit_id)
    return ApiResponse.ok("Toolkit deleted successfully", _toolkit(toolkit))


@router.put(
    "/update-variant/{toolkit_id}/{variant_id}",
    response_model=ApiResponse[ToolkitResponse],
    summary="Update a variant",
)
def update_variant(
    toolkit_id: str,
    variant_id: str,
    data: VariantUpdate,
    conn=Depends(db_dependency),
    notifier=Depends(notifier_dependency),
):
    """
    Update size, color, stock count, minimum level or in-use flag of a variant.

    A changed stock count is written to the variant's history.
    """
    logger.info("Updating variant toolkit_id=%s variant_id=%s", toolkit_id, variant_id)
    service = ToolkitService(conn, notifier)
    toolkit = service.update_variant(toolkit_id, variant_id, data)
    return ApiResponse.ok("Variant updated successfully", _toolkit(toolkit))


@router.delete(
    "/delete-variant/{toolkit_id}/{variant_id}",
    response_model=ApiResponse[Optional[ToolkitResponse]],
    summary="Delete a variant",
)
def delete_variant(
    toolkit_id: str,
    variant_id: str,
    conn=Depends(db_dependency),
    notifier=Depends(notifier_dependency),
):
    """Delete a variant. Removing the last variant deletes the toolkit too."""
    logger.info("Deleting variant toolkit_id=%s variant_id=%s", toolkit_id, variant_id)
    service = ToolkitService(conn, notifier)
    toolkit = service.delete_variant(toolkit_id, variant_id)
    if toolkit is None:
        return ApiResponse.ok("Variant deleted; toolkit removed as it has no variants left")
    return ApiResponse.ok("Variant deleted successfully", _toolkit(toolkit))


@router.put(
    "/reduce-stock/{toolkit_id}/{variant_id}",
    response_model=ApiResponse[ToolkitResponse],
    summary="Reduce stock of a variant",
)
def reduce_stock(
    toolkit_id: str,
    variant_id: str,
    data: ReduceStockRequest,
    conn=Depends(db_dependency),
    notifier=Depends(notifier_dependency),
):
    """
    Hand ``quantity`` items out of a variant.

    Requesting more than is on hand → **400** and nothing changes.
    """
    logger.info("Reducing stock toolkit_id=%s variant_id=%s", toolkit_id, variant_id)
    service = ToolkitService(conn, notifier)
    toolkit = service.reduce_stock(toolkit_id, variant_id, data)
    return ApiResponse.ok("Stock reduced successfully", _toolkit(toolkit))


@router.get(
    "/stock-history/{toolkit_id}/{variant_id}",
    response_model=ApiResponse[VariantStockHistoryResponse],
    summary="Get a variant's stock history",
)
def get_stock_history(
    toolkit_id: str,
    variant_id: str,
    conn=Depends(db_dependency),
    notifier=Depends(notifier_dependency),
):
    """Return the variant's stock history, newest entry first."""
    logger.info("Fetching stock history toolkit_id=%s variant_id=%s", toolkit_id, variant_id)
    service = ToolkitService(conn, notifier)
    history = VariantStockHistoryResponse.model_validate(
        service.get_stock_history(toolkit_id, variant_id)
    )
    return ApiResponse.ok("Stock history retrieved successfully", history)


@router.get(
    "/toolkit-stock-history/{toolkit_id}",
    response_model=ApiResponse[ToolkitStockHistoryResponse],
    summary="Get stock history of every variant",
)
def get_toolkit_stock_history(
    toolkit_id: str,
    conn=Depends(db_dependency),
    notifier=Depends(notifier_dependency),
):
    """Return each variant's stock history, newest entry first."""
    logger.info("Fetching toolkit stock history toolkit_id=%s", toolkit_id)
    service = ToolkitService(conn, notifier)
    history = ToolkitStockHistoryResponse.model_validate(
        service.get_toolkit_stock_history(toolkit_id)
    )
    return ApiResponse.ok("Toolkit stock history retrieved successfully", history)
