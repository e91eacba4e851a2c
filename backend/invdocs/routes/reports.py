from flask import Blueprint, Response, g

from invdocs.decorators import with_actor
from invdocs.services import reporting_service
from invdocs.validation import NotFoundError, ValidationError


reports_bp = Blueprint("reports", __name__, url_prefix="/api")


def _download(report: reporting_service.RenderedReport) -> Response:
    return Response(
        report.content,
        mimetype=report.mimetype,
        headers={"Content-Disposition": f'attachment; filename="{report.filename}"'},
    )


@reports_bp.get("/inventory/report/pdf")
@with_actor
def inventory_report_pdf():
    report = reporting_service.inventory_report(fmt="pdf", user=g.actor)
    return _download(report)


@reports_bp.get("/inventory/report")
@with_actor
def inventory_report_xlsx():
    report = reporting_service.inventory_report(fmt="xlsx", user=g.actor)
    return _download(report)


def _order_report(kind: str, order_id: int, fmt: str):
    try:
        report = reporting_service.order_report(kind=kind, order_id=order_id, fmt=fmt, user=g.actor)
    except NotFoundError as exc:
        return {"error": str(exc)}, 404
    except ValidationError as exc:
        return {"error": str(exc)}, 400
    return _download(report)


@reports_bp.get("/orders/<int:order_id>/report/<fmt>")
@with_actor
def order_report(order_id: int, fmt: str):
    return _order_report("ORDER", order_id, fmt)


@reports_bp.get("/sales/<int:order_id>/report/<fmt>")
@with_actor
def sale_report(order_id: int, fmt: str):
    return _order_report("SALE", order_id, fmt)
