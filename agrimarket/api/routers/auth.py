# agrimarket/api/routers/auth.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from agrimarket.api.deps import Identity, get_identity
from agrimarket.data.database import get_db
from agrimarket.domain.schemas import RegisterIn, LoginIn, AuthOut, UserOut, VerifyOut, MessageOut
from agrimarket.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])


def get_service(db: Session):
    return AuthService(db)


@router.post("/register", response_model=AuthOut, status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    svc = get_service(db)
    return svc.register(payload)


@router.post("/login", response_model=AuthOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    svc = get_service(db)
    return svc.login(payload.email, payload.password)


@router.post("/logout", response_model=MessageOut)
def logout(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    svc = get_service(db)
    svc.logout(identity.user_id, identity.token)
    return {"message": "Logged out successfully"}


@router.get("/profile", response_model=UserOut)
def profile(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    svc = get_service(db)
    return svc.profile(identity.user_id)


@router.get("/verify", response_model=VerifyOut)
def verify(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    svc = get_service(db)
    return {"valid": True, "user": svc.profile(identity.user_id)}
