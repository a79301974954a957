from fastapi import APIRouter, Depends, Header, Response, status

from deal_desk.domain.totals import calculate_totals
from deal_desk.entrypoints.http.dependencies import (
    get_add_part_exchange_use_case,
    get_cancel_deal_use_case,
    get_create_deal_use_case,
    get_dealer_id,
    get_delete_deal_use_case,
    get_generate_invoice_use_case,
    get_get_deal_use_case,
    get_list_documents_use_case,
    get_mark_completed_use_case,
    get_mark_delivered_use_case,
    get_record_balance_payment_use_case,
    get_regenerate_receipt_use_case,
    get_remove_part_exchange_use_case,
    get_take_deposit_use_case,
    get_update_deal_use_case,
    get_update_part_exchange_use_case,
    get_update_warranty_use_case,
    get_void_invoice_use_case,
)
from deal_desk.entrypoints.http.dtos.deals import (
    CancelDealRequestDTO,
    CancelDealResponseDTO,
    CompensationFailureDTO,
    CreateDealRequestDTO,
    DealResponseDTO,
    MarkCompletedRequestDTO,
    MarkCompletedResponseDTO,
    MarkDeliveredRequestDTO,
    UpdateDealRequestDTO,
    WarrantyDTO,
)
from deal_desk.entrypoints.http.dtos.documents import (
    DocumentListResponseDTO,
    GenerateInvoiceRequestDTO,
    GenerateInvoiceResponseDTO,
    RegenerateReceiptResponseDTO,
    VoidInvoiceRequestDTO,
    VoidInvoiceResponseDTO,
)
from deal_desk.entrypoints.http.dtos.part_exchanges import (
    PartExchangeDTO,
    RemovePartExchangeRequestDTO,
    UpdatePartExchangeRequestDTO,
)
from deal_desk.entrypoints.http.dtos.payments import (
    PaymentRequestDTO,
    RecordBalancePaymentRequestDTO,
    RecordBalancePaymentResponseDTO,
    TakeDepositResponseDTO,
)
from deal_desk.entrypoints.http.error_responses import ErrorResponse
from deal_desk.entrypoints.http.mappers.deal_mapper import DealMapper
from deal_desk.entrypoints.http.mappers.payment_mapper import PaymentMapper
from deal_desk.use_cases.cancel_deal import CancelDeal, CancelDealRequest
from deal_desk.use_cases.create_deal import CreateDeal
from deal_desk.use_cases.delete_deal import DeleteDeal, DeleteDealRequest
from deal_desk.use_cases.generate_invoice import GenerateInvoice, GenerateInvoiceRequest
from deal_desk.use_cases.get_deal import GetDeal, GetDealRequest, ListDealDocuments
from deal_desk.use_cases.manage_part_exchanges import (
    AddPartExchange,
    AddPartExchangeRequest,
    RemovePartExchange,
    RemovePartExchangeRequest,
    UpdatePartExchange,
    UpdatePartExchangeRequest,
)
from deal_desk.use_cases.mark_completed import MarkCompleted, MarkCompletedRequest
from deal_desk.use_cases.mark_delivered import MarkDelivered, MarkDeliveredRequest
from deal_desk.use_cases.record_balance_payment import RecordBalancePayment
from deal_desk.use_cases.regenerate_receipt import RegenerateReceipt, RegenerateReceiptRequest
from deal_desk.use_cases.take_deposit import TakeDeposit
from deal_desk.use_cases.update_deal import UpdateDeal
from deal_desk.use_cases.update_warranty import UpdateWarranty, UpdateWarrantyRequest
from deal_desk.use_cases.void_invoice import VoidInvoice, VoidInvoiceRequest


router = APIRouter(tags=["Deals"])

_ERRORS = {
    400: {"model": ErrorResponse, "description": "Validation or precondition failure"},
    401: {"model": ErrorResponse, "description": "Missing dealer scope"},
    404: {"model": ErrorResponse, "description": "Deal not found"},
    409: {"model": ErrorResponse, "description": "Concurrent modification or stock conflict"},
    500: {"model": ErrorResponse, "description": "Reconciliation failure"},
}


def _idempotency_key(
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
) -> str | None:
    return idempotency_key


# ----------------------------------------------------------------------
# Deal CRUD
# ----------------------------------------------------------------------


@router.post(
    "/deals",
    response_model=DealResponseDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Create deal",
    description="""
    Open a DRAFT deal for a vehicle in stock.

    ## Pricing
    - `vehiclePriceGross` is what the customer pays for the vehicle
    - Under `VAT_QUALIFYING` the net/VAT split is derived from it
    - Add-ons may be entered net (`unitPriceNet`) or gross (`unitPriceGross`)

    Deal numbers are allocated per dealer and never reused.
    """,
    responses=_ERRORS,
)
def create_deal(
    dto: CreateDealRequestDTO,
    dealer_id: str = Depends(get_dealer_id),
    use_case: CreateDeal = Depends(get_create_deal_use_case),
) -> DealResponseDTO:
    request = DealMapper.to_create_request(dealer_id, dto)
    deal = use_case.execute(request)
    return DealMapper.to_response(deal, calculate_totals(deal))


@router.get(
    "/deals/{deal_id}",
    response_model=DealResponseDTO,
    summary="Get deal",
    description="Deal with its live totals (recomputed from line items and payments).",
    responses=_ERRORS,
)
def get_deal(
    deal_id: str,
    dealer_id: str = Depends(get_dealer_id),
    use_case: GetDeal = Depends(get_get_deal_use_case),
) -> DealResponseDTO:
    result = use_case.execute(GetDealRequest(dealer_id=dealer_id, deal_id=deal_id))
    return DealMapper.to_response(result.deal, result.totals)


@router.patch(
    "/deals/{deal_id}",
    response_model=DealResponseDTO,
    summary="Update deal",
    description="""
    Partial update. Only fields present in the body are changed.

    Allowed while the deal is DRAFT or DEPOSIT_TAKEN. Changing the VAT scheme,
    rate or vehicle price re-derives the stored net/VAT split.
    """,
    responses=_ERRORS,
)
def update_deal(
    deal_id: str,
    dto: UpdateDealRequestDTO,
    dealer_id: str = Depends(get_dealer_id),
    use_case: UpdateDeal = Depends(get_update_deal_use_case),
) -> DealResponseDTO:
    request = DealMapper.to_update_request(dealer_id, deal_id, dto)
    deal = use_case.execute(request)
    return DealMapper.to_response(deal, calculate_totals(deal))


@router.delete(
    "/deals/{deal_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete draft deal",
    description="Only DRAFT deals without payments can be deleted. The vehicle is released.",
    responses=_ERRORS,
)
def delete_deal(
    deal_id: str,
    dealer_id: str = Depends(get_dealer_id),
    use_case: DeleteDeal = Depends(get_delete_deal_use_case),
) -> Response:
    use_case.execute(DeleteDealRequest(dealer_id=dealer_id, deal_id=deal_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/deals/{deal_id}/documents",
    response_model=DocumentListResponseDTO,
    summary="List sales documents",
    description="Receipts and invoices for the deal in issue order, voided ones included.",
    responses=_ERRORS,
)
def list_documents(
    deal_id: str,
    dealer_id: str = Depends(get_dealer_id),
    use_case: ListDealDocuments = Depends(get_list_documents_use_case),
) -> DocumentListResponseDTO:
    documents = use_case.execute(GetDealRequest(dealer_id=dealer_id, deal_id=deal_id))
    return DocumentListResponseDTO(documents=[DealMapper.to_document(d) for d in documents])


# ----------------------------------------------------------------------
# Payments and documents
# ----------------------------------------------------------------------


@router.post(
    "/deals/{deal_id}/take-deposit",
    response_model=TakeDepositResponseDTO,
    summary="Take deposit",
    description="""
    Record a deposit and issue a numbered deposit receipt.

    ## Monetary Values
    - `amount` is a decimal string (e.g., "500.00") or a JSON number (500)

    ## Idempotency
    Send an `Idempotency-Key` header to make retries safe. A replayed request
    returns the original outcome with `replayed: true` and no share URL.

    ## Example
    ```
    POST /api/deals/{deal_id}/take-deposit
    {
        "amount": "500.00",
        "method": "CARD",
        "reference": "TXN-1"
    }
    ```
    """,
    responses={
        200: {
            "description": "Deposit recorded",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "dealId": "d-1",
                        "paymentId": "p-1",
                        "amount": "500.00",
                        "totalDeposits": "500.00",
                        "depositReceipt": {
                            "id": "doc-1",
                            "documentNumber": "DEP00001",
                            "shareUrl": "https://dealer.example/public/deposit-receipt/abc",
                        },
                        "replayed": False,
                    }
                }
            },
        },
        **_ERRORS,
    },
)
def take_deposit(
    deal_id: str,
    dto: PaymentRequestDTO,
    dealer_id: str = Depends(get_dealer_id),
    idempotency_key: str | None = Depends(_idempotency_key),
    use_case: TakeDeposit = Depends(get_take_deposit_use_case),
) -> TakeDepositResponseDTO:
    """Take deposit endpoint following parse → execute → map → return pattern."""
    # 1. Map to domain request
    request = PaymentMapper.to_take_deposit_request(dealer_id, deal_id, dto, idempotency_key)

    # 2. Execute use case
    result = use_case.execute(request)

    # 3. Map to response
    return PaymentMapper.to_take_deposit_response(result)


@router.post(
    "/deals/{deal_id}/record-balance-payment",
    response_model=RecordBalancePaymentResponseDTO,
    summary="Record balance payment",
    description="""
    Record a payment against the outstanding balance.

    ## Calculation
    - Balance is taken from the active invoice when one exists
    - balance = grand total - payments so far - part-exchange net value
    - Overpayment is allowed; the balance after is reported as 0.00

    The payment, the optional payment receipt and the invoice update commit
    together. `Idempotency-Key` is honoured as for deposits.
    """,
    responses=_ERRORS,
)
def record_balance_payment(
    deal_id: str,
    dto: RecordBalancePaymentRequestDTO,
    dealer_id: str = Depends(get_dealer_id),
    idempotency_key: str | None = Depends(_idempotency_key),
    use_case: RecordBalancePayment = Depends(get_record_balance_payment_use_case),
) -> RecordBalancePaymentResponseDTO:
    request = PaymentMapper.to_balance_payment_request(dealer_id, deal_id, dto, idempotency_key)
    result = use_case.execute(request)
    return PaymentMapper.to_balance_payment_response(result)


@router.post(
    "/deals/{deal_id}/generate-invoice",
    response_model=GenerateInvoiceResponseDTO,
    summary="Generate invoice",
    description="Freeze the deal's figures into a new numbered invoice. Requires a customer.",
    responses=_ERRORS,
)
def generate_invoice(
    deal_id: str,
    dto: GenerateInvoiceRequestDTO | None = None,
    dealer_id: str = Depends(get_dealer_id),
    use_case: GenerateInvoice = Depends(get_generate_invoice_use_case),
) -> GenerateInvoiceResponseDTO:
    dto = dto or GenerateInvoiceRequestDTO()
    request = GenerateInvoiceRequest(
        dealer_id=dealer_id,
        deal_id=deal_id,
        payment_method=dto.payment_method,
        finance_selection=dto.finance_selection.to_domain() if dto.finance_selection else None,
    )
    result = use_case.execute(request)
    return PaymentMapper.to_invoice_response(result)


@router.post(
    "/deals/{deal_id}/void-invoice",
    response_model=VoidInvoiceResponseDTO,
    summary="Void invoice",
    description="""
    Void the active invoice and move the deal back to DEPOSIT_TAKEN.

    The invoice keeps its number; the next invoice gets a new one.
    """,
    responses=_ERRORS,
)
def void_invoice(
    deal_id: str,
    dto: VoidInvoiceRequestDTO | None = None,
    dealer_id: str = Depends(get_dealer_id),
    use_case: VoidInvoice = Depends(get_void_invoice_use_case),
) -> VoidInvoiceResponseDTO:
    request = VoidInvoiceRequest(
        dealer_id=dealer_id, deal_id=deal_id, reason=dto.reason if dto else None
    )
    result = use_case.execute(request)
    return PaymentMapper.to_void_response(result)


@router.post(
    "/deals/{deal_id}/regenerate-receipt",
    response_model=RegenerateReceiptResponseDTO,
    summary="Regenerate deposit receipt",
    description="Refresh the deposit receipt snapshot. The receipt number is kept.",
    responses=_ERRORS,
)
def regenerate_receipt(
    deal_id: str,
    dealer_id: str = Depends(get_dealer_id),
    use_case: RegenerateReceipt = Depends(get_regenerate_receipt_use_case),
) -> RegenerateReceiptResponseDTO:
    result = use_case.execute(RegenerateReceiptRequest(dealer_id=dealer_id, deal_id=deal_id))
    return PaymentMapper.to_regenerate_response(result)


# ----------------------------------------------------------------------
# Lifecycle
# ----------------------------------------------------------------------


@router.post(
    "/deals/{deal_id}/mark-delivered",
    response_model=DealResponseDTO,
    summary="Mark delivered",
    responses=_ERRORS,
)
def mark_delivered(
    deal_id: str,
    dto: MarkDeliveredRequestDTO,
    dealer_id: str = Depends(get_dealer_id),
    use_case: MarkDelivered = Depends(get_mark_delivered_use_case),
) -> DealResponseDTO:
    request = MarkDeliveredRequest(
        dealer_id=dealer_id,
        deal_id=deal_id,
        customer_confirmed=dto.customer_confirmed,
        delivered_at=dto.delivered_at,
        mileage=dto.mileage,
        notes=dto.notes,
    )
    return DealMapper.to_response(use_case.execute(request))


@router.post(
    "/deals/{deal_id}/mark-completed",
    response_model=MarkCompletedResponseDTO,
    summary="Mark completed",
    description="""
    Complete a delivered deal.

    Part-exchanges with finance need written settlement figures unless
    `confirmWithoutSettlement` is true. Stock follow-ups (vehicle SOLD,
    part-exchange intake) run after the deal is saved; failures are listed in
    `stockFollowUps` and do not undo completion.
    """,
    responses=_ERRORS,
)
def mark_completed(
    deal_id: str,
    dto: MarkCompletedRequestDTO | None = None,
    dealer_id: str = Depends(get_dealer_id),
    use_case: MarkCompleted = Depends(get_mark_completed_use_case),
) -> MarkCompletedResponseDTO:
    dto = dto or MarkCompletedRequestDTO()
    result = use_case.execute(
        MarkCompletedRequest(
            dealer_id=dealer_id,
            deal_id=deal_id,
            confirm_without_settlement=dto.confirm_without_settlement,
            notes=dto.notes,
        )
    )
    return MarkCompletedResponseDTO(
        deal=DealMapper.to_response(result.deal),
        part_exchanges_stocked=result.part_exchanges_stocked,
        stock_follow_ups=result.stock_follow_ups,
    )


@router.post(
    "/deals/{deal_id}/cancel",
    response_model=CancelDealResponseDTO,
    summary="Cancel deal",
    description="""
    Cancel a deal from any status except CANCELLED.

    - Cancelling a completed deal requires a non-empty `reason`
    - Any other status requires `confirmed: true`

    The vehicle is returned to stock after the cancellation is saved. If a
    compensation step fails it is reported in `compensationFailures` and
    `success` is false; the deal stays cancelled.
    """,
    responses=_ERRORS,
)
def cancel_deal(
    deal_id: str,
    dto: CancelDealRequestDTO | None = None,
    dealer_id: str = Depends(get_dealer_id),
    use_case: CancelDeal = Depends(get_cancel_deal_use_case),
) -> CancelDealResponseDTO:
    dto = dto or CancelDealRequestDTO()
    result = use_case.execute(
        CancelDealRequest(
            dealer_id=dealer_id, deal_id=deal_id, reason=dto.reason, confirmed=dto.confirmed
        )
    )
    return CancelDealResponseDTO(
        success=result.success,
        deal=DealMapper.to_response(result.deal),
        previous_status=result.previous_status,
        removed_part_exchange_vrms=result.removed_part_exchange_vrms,
        compensation_failures=[
            CompensationFailureDTO(step=f.step, error=f.error) for f in result.compensation_failures
        ],
    )


# ----------------------------------------------------------------------
# Part-exchanges and warranty
# ----------------------------------------------------------------------


@router.post(
    "/deals/{deal_id}/add-part-exchange",
    response_model=DealResponseDTO,
    summary="Add part-exchange",
    description="Up to two part-exchanges per deal. The VRM must not already be in stock.",
    responses=_ERRORS,
)
def add_part_exchange(
    deal_id: str,
    dto: PartExchangeDTO,
    dealer_id: str = Depends(get_dealer_id),
    use_case: AddPartExchange = Depends(get_add_part_exchange_use_case),
) -> DealResponseDTO:
    request = AddPartExchangeRequest(
        dealer_id=dealer_id, deal_id=deal_id, part_exchange=DealMapper.to_part_exchange(dto)
    )
    deal = use_case.execute(request)
    return DealMapper.to_response(deal, calculate_totals(deal))


@router.put(
    "/deals/{deal_id}/update-part-exchange",
    response_model=DealResponseDTO,
    summary="Update part-exchange",
    responses=_ERRORS,
)
def update_part_exchange(
    deal_id: str,
    dto: UpdatePartExchangeRequestDTO,
    dealer_id: str = Depends(get_dealer_id),
    use_case: UpdatePartExchange = Depends(get_update_part_exchange_use_case),
) -> DealResponseDTO:
    request = UpdatePartExchangeRequest(
        dealer_id=dealer_id,
        deal_id=deal_id,
        index=dto.index,
        updates=DealMapper.to_part_exchange_updates(dto),
    )
    deal = use_case.execute(request)
    return DealMapper.to_response(deal, calculate_totals(deal))


@router.post(
    "/deals/{deal_id}/remove-part-exchange",
    response_model=DealResponseDTO,
    summary="Remove part-exchange",
    responses=_ERRORS,
)
def remove_part_exchange(
    deal_id: str,
    dto: RemovePartExchangeRequestDTO,
    dealer_id: str = Depends(get_dealer_id),
    use_case: RemovePartExchange = Depends(get_remove_part_exchange_use_case),
) -> DealResponseDTO:
    deal = use_case.execute(
        RemovePartExchangeRequest(dealer_id=dealer_id, deal_id=deal_id, index=dto.index)
    )
    return DealMapper.to_response(deal, calculate_totals(deal))


@router.post(
    "/deals/{deal_id}/update-warranty",
    response_model=DealResponseDTO,
    summary="Update warranty",
    responses=_ERRORS,
)
def update_warranty(
    deal_id: str,
    dto: WarrantyDTO,
    dealer_id: str = Depends(get_dealer_id),
    use_case: UpdateWarranty = Depends(get_update_warranty_use_case),
) -> DealResponseDTO:
    request = UpdateWarrantyRequest(
        dealer_id=dealer_id, deal_id=deal_id, warranty=DealMapper.to_warranty(dto)
    )
    deal = use_case.execute(request)
    return DealMapper.to_response(deal, calculate_totals(deal))
