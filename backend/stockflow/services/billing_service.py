# Overview: Bill issuing for committed sales: render, upload, status update, receipt email.

"""
Billing

Runs after the sale transaction has committed, so nothing here can undo a
sale. Per order:

1. render_bill()       - failure marks every record FAILED and re-raises
2. upload (retried)    - success -> GENERATED + pdf_url, any failure -> FAILED
3. receipt email       - any failure is logged only

Status moves PENDING -> GENERATED | FAILED exactly once; the guarded UPDATE
makes a second write a no-op.

BILL_DISPATCH_MODE:
- "inline" (default): steps 2-3 finish before the HTTP response
- "background": steps 2-3 run on a thread pool; the response reports PENDING
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from decimal import Decimal
import threading

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import SaleRecord
from ..models.sales import BILL_PENDING, BILL_GENERATED, BILL_FAILED, BILL_STATUSES
from .bill_service import BillRenderError, bill_data_from_sales, render_bill
from .concurrency import call_with_backoff
from .mail_service import send_sale_receipt
from .storage_service import StorageError, upload_bill


DISPATCH_INLINE = "inline"
DISPATCH_BACKGROUND = "background"

_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=current_app.config["BILL_DISPATCH_WORKERS"],
                thread_name_prefix="bill-dispatch",
            )
        return _executor


def set_bill_status(sale_ids: list[int], status: str, pdf_url: str | None = None) -> int:
    """
    Move PENDING records to `status` and commit.

    Returns the number of records changed; records already past PENDING are
    left untouched.
    """
    if status not in BILL_STATUSES:
        raise ValueError(f"Unknown bill status {status!r}")
    values = {"bill_status": status}
    if pdf_url:
        values["pdf_url"] = pdf_url

    result = db.session.execute(
        update(SaleRecord)
        .where(SaleRecord.id.in_(sale_ids), SaleRecord.bill_status == BILL_PENDING)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    return result.rowcount


def _safe_set_status(sale_ids: list[int], status: str, pdf_url: str | None = None) -> None:
    try:
        changed = set_bill_status(sale_ids, status, pdf_url)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Could not mark sales %s as %s", sale_ids, status)
        return
    if changed != len(sale_ids):
        current_app.logger.warning(
            "Bill status %s applied to %d of %d sales %s", status, changed, len(sale_ids), sale_ids
        )


def deliver_bill(sale_ids: list[int], pdf_bytes: bytes, customer: str, customermail: str) -> str | None:
    """Upload the rendered bill and email the receipt. Returns the stored URL or None."""
    pdf_url = None
    try:
        result = call_with_backoff(
            lambda: upload_bill(pdf_bytes),
            attempts=current_app.config["BILL_UPLOAD_ATTEMPTS"],
            retry_on=(StorageError,),
        )
        pdf_url = result.secure_url
    except Exception:
        current_app.logger.exception("Bill upload failed for sales %s", sale_ids)

    if pdf_url:
        _safe_set_status(sale_ids, BILL_GENERATED, pdf_url)
    else:
        _safe_set_status(sale_ids, BILL_FAILED)

    try:
        send_sale_receipt(customer, customermail, pdf_bytes)
    except Exception:
        current_app.logger.exception("Receipt email to %s failed for sales %s", customermail, sale_ids)

    return pdf_url


def _deliver_in_context(app, sale_ids, pdf_bytes, customer, customermail) -> str | None:
    with app.app_context():
        try:
            return deliver_bill(sale_ids, pdf_bytes, customer, customermail)
        except Exception:
            app.logger.exception("Background bill dispatch crashed for sales %s", sale_ids)
            return None


def issue_bill(sales: list[SaleRecord], discount_percent: Decimal) -> Future | str | None:
    """
    Render and dispatch the bill for one committed order.

    Raises BillRenderError after marking the order FAILED. In background mode
    returns the Future of the dispatch job, otherwise the stored URL or None.
    """
    sale_ids = [s.id for s in sales]
    customer = sales[0].customer
    customermail = sales[0].customermail

    try:
        pdf_bytes = render_bill(bill_data_from_sales(sales, discount_percent))
    except BillRenderError:
        current_app.logger.exception("Bill render failed for sales %s", sale_ids)
        _safe_set_status(sale_ids, BILL_FAILED)
        raise

    if current_app.config["BILL_DISPATCH_MODE"] == DISPATCH_BACKGROUND:
        app = current_app._get_current_object()
        return _get_executor().submit(_deliver_in_context, app, sale_ids, pdf_bytes, customer, customermail)

    return deliver_bill(sale_ids, pdf_bytes, customer, customermail)
