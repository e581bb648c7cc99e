"""
UserOperation API

Endpoints backing the custom bundler transport:
- Paymaster sponsorship for a partial UserOperation
- Submission of a signed UserOperation to the bundler
- Status / receipt lookup by UserOperation hash
- The operation itself as the bundler reports it
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ..core.userop import UserOperation, ensure_user_op_hash, to_wire
from ..providers.bundler import BundlerProvider
from ..providers.paymaster import PaymasterProvider
from ..types import ApiEnvelope, SponsorUserOpRequest, SubmitUserOpRequest

router = APIRouter(prefix="/api/user-operations", tags=["user-operations"])


def get_paymaster_provider(request: Request) -> PaymasterProvider:
    return request.app.state.paymaster


def get_bundler_provider(request: Request) -> BundlerProvider:
    return request.app.state.bundler


@router.post(
    "/sponsor",
    response_model=ApiEnvelope,
    response_model_exclude_none=True,
    summary="Get paymaster sponsorship for a UserOperation",
)
async def sponsor_user_operation(
    body: SponsorUserOpRequest,
    paymaster: PaymasterProvider = Depends(get_paymaster_provider),
) -> ApiEnvelope:
    user_op = UserOperation.from_rpc(body.userOp.model_dump(exclude_none=True), partial=True)
    result = await paymaster.sponsor(user_op, body.chainId)
    return ApiEnvelope.ok(result.to_rpc_dict())


@router.post(
    "",
    response_model=ApiEnvelope,
    response_model_exclude_none=True,
    summary="Submit a signed UserOperation to the bundler",
)
async def submit_user_operation(
    body: SubmitUserOpRequest,
    bundler: BundlerProvider = Depends(get_bundler_provider),
) -> ApiEnvelope:
    user_op = UserOperation.from_rpc(body.userOp.model_dump(exclude_none=True))
    user_op_hash = await bundler.submit(user_op, chain_id=body.chainId)
    return ApiEnvelope.ok({"userOpHash": user_op_hash, "status": "submitted"})


@router.get(
    "/{user_op_hash}",
    response_model=ApiEnvelope,
    response_model_exclude_none=True,
    summary="Get UserOperation status and receipt",
)
async def get_user_operation_status(
    user_op_hash: str,
    bundler: BundlerProvider = Depends(get_bundler_provider),
) -> ApiEnvelope:
    ensure_user_op_hash(user_op_hash)

    receipt = await bundler.get_receipt(user_op_hash)
    if receipt is None:
        return ApiEnvelope.ok({"userOpHash": user_op_hash, "status": "pending"})

    return ApiEnvelope.ok(
        {
            "userOpHash": user_op_hash,
            "status": "confirmed" if receipt.success else "failed",
            "receipt": receipt.to_rpc_dict(),
        }
    )


@router.get(
    "/{user_op_hash}/details",
    response_model=ApiEnvelope,
    summary="Get the UserOperation the bundler knows under this hash",
)
async def get_user_operation_details(
    user_op_hash: str,
    bundler: BundlerProvider = Depends(get_bundler_provider),
) -> ApiEnvelope:
    ensure_user_op_hash(user_op_hash)

    found = await bundler.get_user_operation_by_hash(user_op_hash)
    # data stays null for a hash the bundler has never seen
    return ApiEnvelope.ok(to_wire(found) if found is not None else None)
