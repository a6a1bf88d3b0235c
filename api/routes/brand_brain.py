from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.deps import get_current_user, get_onboarding_manager
from api.errors import from_domain_error, ok
from core.onboarding_manager import OnboardingManager

router = APIRouter(prefix='/api/brand-brain', tags=['brain'])


class SectionUpdateRequest(BaseModel):
    brandId: str = Field(min_length=1)
    sectionKey: Literal['summary', 'audience', 'tone', 'pillars', 'offers', 'competitors', 'channels']
    content: str


@router.post('/update')
def update_section(
    body: SectionUpdateRequest,
    user=Depends(get_current_user),
    manager: OnboardingManager = Depends(get_onboarding_manager),
):
    try:
        return ok(manager.update_section(body.brandId, body.sectionKey, body.content, user_id=user.id))
    except (ValueError, LookupError) as e:
        raise from_domain_error(e)
