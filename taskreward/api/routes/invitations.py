from fastapi import APIRouter, Depends, status

from ...models.user import User
from ...schemas.invite import InviteCreate, InviteIssued, InviteOut, RedeemIn
from ...schemas.user import RelationshipOut
from ...services.invitation_service import InvitationService
from ..deps import get_current_user, get_invitation_service, require_parent

router = APIRouter()


@router.post("", response_model=InviteIssued, status_code=status.HTTP_201_CREATED)
def issue_invitation(
    payload: InviteCreate,
    current: User = Depends(require_parent),
    invitations: InvitationService = Depends(get_invitation_service),
):
    return InviteIssued(code=invitations.issue(parent_id=current.id, child_id=payload.child_id))


@router.get("/children/{child_id}", response_model=list[InviteOut])
def list_invitations(
    child_id: str,
    current: User = Depends(require_parent),
    invitations: InvitationService = Depends(get_invitation_service),
):
    return invitations.list_codes(parent_id=current.id, child_id=child_id)


# any authenticated user may try; the service answers not_parent_role for child accounts
@router.post("/redeem", response_model=RelationshipOut)
def redeem_invitation(
    payload: RedeemIn,
    current: User = Depends(get_current_user),
    invitations: InvitationService = Depends(get_invitation_service),
):
    return invitations.redeem(parent_id=current.id, code=payload.code)
