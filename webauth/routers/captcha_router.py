from fastapi import APIRouter, Depends

from webauth.container import Container
from webauth.dependencies import get_container
from webauth.schemas import CaptchaResponse

router = APIRouter(tags=["captcha"])


@router.get("/captcha", response_model=CaptchaResponse)
def issue_captcha(container: Container = Depends(get_container)):
    challenge = container.captcha_service.issue()
    return CaptchaResponse(
        captcha_id=challenge.id,
        question=challenge.question,
        num1=challenge.num1,
        num2=challenge.num2,
        operator=challenge.operator,
    )
