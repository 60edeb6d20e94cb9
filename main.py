import logging
import threading
from contextlib import asynccontextmanager
from typing import Optional, List, Any, Dict

from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel, Field

import config
from access import Capability, dashboard_for, require_capability
from auth import AuthService
from directory import Directory
from errors import AuthenticationFailure, RatingsError
from logging_config import setup_logging
from ratings import RatingAggregator
from record_store import Collection, RecordStore
from schemas import Role, Session, User
from security import create_access_token, decode_access_token
from seed import seed_bootstrap_data

logger = logging.getLogger(__name__)

_record_store: Optional[RecordStore] = None
_record_store_lock = threading.Lock()


def _create_record_store() -> RecordStore:
    from database import db
    return RecordStore(db)


def get_record_store() -> RecordStore:
    """Process-wide RecordStore; every request must share its locks."""
    global _record_store
    if _record_store is None:
        with _record_store_lock:
            if _record_store is None:
                _record_store = _create_record_store()
    return _record_store


@asynccontextmanager
async def lifespan(_app: FastAPI):
    setup_logging()
    if config.SEED_ON_STARTUP:
        seed_bootstrap_data(get_record_store())
    logger.info("Ratings Platform API started")
    yield


# App and CORS
app = FastAPI(title="Ratings Platform API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


@app.exception_handler(RatingsError)
async def ratings_error_handler(request: Request, exc: RatingsError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


# Dependencies

def get_session(token: Optional[str] = Depends(oauth2_scheme), store: RecordStore = Depends(get_record_store)) -> Session:
    """Session for the bearer token; anonymous when no token is sent."""
    if not token:
        return Session()
    user_id = decode_access_token(token)
    user = next((u for u in store.load(Collection.USERS) if u.id == user_id), None)
    if user is None:
        raise AuthenticationFailure("Could not validate credentials")
    return Session(user=user)


def get_current_user(session: Session = Depends(get_session)) -> User:
    if not session.is_authenticated:
        raise HTTPException(status_code=401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"})
    return session.user


def require(capability: Capability):
    def capability_dep(session: Session = Depends(get_session)) -> User:
        return require_capability(session, capability)
    return capability_dep


def get_directory(store: RecordStore = Depends(get_record_store)) -> Directory:
    return Directory(store)


def get_aggregator(store: RecordStore = Depends(get_record_store)) -> RatingAggregator:
    return RatingAggregator(store)


# Request/Response Models
class SignupRequest(BaseModel):
    name: str
    email: str
    address: str
    password: str

class LoginRequest(BaseModel):
    email: str
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Dict[str, Any]
    dashboard: str

class CreateUserRequest(BaseModel):
    name: str
    email: str
    address: str
    password: str
    role: Role = Role.USER

class CreateStoreRequest(BaseModel):
    name: str
    email: str
    address: str
    owner_id: str

class UpdatePasswordRequest(BaseModel):
    new_password: str

class RateStoreRequest(BaseModel):
    score: int = Field(..., ge=1, le=5)


def token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token({"sub": user.id}),
        user=user.public(),
        dashboard=dashboard_for(user.role),
    )


# Auth Routes
@app.post("/auth/signup", response_model=TokenResponse)
def signup(payload: SignupRequest, store: RecordStore = Depends(get_record_store)):
    user = AuthService(store, persist_session=False).register(payload.model_dump())
    return token_response(user)

@app.post("/auth/login", response_model=TokenResponse)
def login(payload: LoginRequest, store: RecordStore = Depends(get_record_store)):
    user = AuthService(store, persist_session=False).login(payload.email, payload.password)
    return token_response(user)

@app.post("/auth/logout")
def logout(session: Session = Depends(get_session), store: RecordStore = Depends(get_record_store)):
    # Tokens are stateless; the client discards its copy.
    AuthService(store, session=session, persist_session=False).logout()
    return {"message": "Logged out"}

@app.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {**current_user.public(), "dashboard": dashboard_for(current_user.role)}

@app.put("/auth/password")
def update_password(
    payload: UpdatePasswordRequest,
    current_user: User = Depends(require(Capability.CHANGE_OWN_PASSWORD)),
    store: RecordStore = Depends(get_record_store),
):
    AuthService(store, session=Session(user=current_user), persist_session=False).update_password(payload.new_password)
    return {"message": "Password updated"}

# Admin Routes
@app.get("/admin/dashboard")
def admin_dashboard(admin=Depends(require(Capability.BROWSE_ALL)), directory: Directory = Depends(get_directory)):
    return directory.stats()

@app.post("/admin/users")
def admin_create_user(
    payload: CreateUserRequest,
    admin=Depends(require(Capability.MANAGE_USERS)),
    directory: Directory = Depends(get_directory),
):
    return directory.create_user(payload.model_dump()).public()

@app.get("/admin/users")
def admin_list_users(
    search: Optional[str] = None,
    name: Optional[str] = None,
    email: Optional[str] = None,
    address: Optional[str] = None,
    role: Optional[Role] = None,
    sort_by: str = Query("name"),
    order: str = Query("asc"),
    admin=Depends(require(Capability.BROWSE_ALL)),
    directory: Directory = Depends(get_directory),
):
    users = directory.list_users(
        search=search, name=name, email=email, address=address,
        role=role.value if role else None, sort_by=sort_by, order=order,
    )
    return [u.public() for u in users]

@app.get("/admin/users/{user_id}")
def admin_get_user(user_id: str, admin=Depends(require(Capability.BROWSE_ALL)), directory: Directory = Depends(get_directory)):
    return directory.get_user(user_id)

@app.delete("/admin/users/{user_id}")
def admin_delete_user(user_id: str, admin=Depends(require(Capability.MANAGE_USERS)), directory: Directory = Depends(get_directory)):
    directory.delete_user(user_id)
    return {"message": "User deleted"}

@app.post("/admin/stores")
def admin_create_store(
    payload: CreateStoreRequest,
    admin=Depends(require(Capability.MANAGE_STORES)),
    directory: Directory = Depends(get_directory),
):
    return directory.create_store(payload.model_dump()).model_dump(mode="json")

@app.get("/admin/stores")
def admin_list_stores(
    search: Optional[str] = None,
    name: Optional[str] = None,
    email: Optional[str] = None,
    address: Optional[str] = None,
    sort_by: str = Query("name"),
    order: str = Query("asc"),
    admin=Depends(require(Capability.BROWSE_ALL)),
    directory: Directory = Depends(get_directory),
):
    stores = directory.list_stores(search=search, name=name, email=email, address=address, sort_by=sort_by, order=order)
    return [s.model_dump(mode="json") for s in stores]

@app.delete("/admin/stores/{store_id}")
def admin_delete_store(store_id: str, admin=Depends(require(Capability.MANAGE_STORES)), directory: Directory = Depends(get_directory)):
    directory.delete_store(store_id)
    return {"message": "Store deleted"}

@app.get("/admin/ratings")
def admin_list_ratings(admin=Depends(require(Capability.BROWSE_ALL)), directory: Directory = Depends(get_directory)):
    return [r.model_dump(mode="json") for r in directory.list_ratings()]

# Stores and Ratings for Users
@app.get("/stores")
def list_stores(
    search: Optional[str] = None,
    sort_by: str = Query("name"),
    order: str = Query("asc"),
    current_user: User = Depends(require(Capability.BROWSE_STORES)),
    directory: Directory = Depends(get_directory),
) -> List[Dict[str, Any]]:
    return directory.browse_stores(current_user.id, search=search, sort_by=sort_by, order=order)

@app.post("/stores/{store_id}/rating")
def rate_store(
    store_id: str,
    payload: RateStoreRequest,
    current_user: User = Depends(require(Capability.RATE_STORES)),
    aggregator: RatingAggregator = Depends(get_aggregator),
):
    rating = aggregator.upsert_rating(store_id, current_user.id, payload.score)
    return {"message": "Rating saved", "rating": rating.model_dump(mode="json")}

# Owner routes
@app.get("/owner/dashboard")
def owner_dashboard(
    current_owner: User = Depends(require(Capability.VIEW_OWN_STORE_RATINGS)),
    aggregator: RatingAggregator = Depends(get_aggregator),
):
    return aggregator.owner_summary(current_owner.id)

# Bootstrap route for demo
@app.post("/init/bootstrap")
def bootstrap(store: RecordStore = Depends(get_record_store)):
    """Seed users, stores and ratings that do not exist yet (admin: admin@example.com / Admin123!)."""
    seeded = seed_bootstrap_data(store)
    if not seeded:
        raise HTTPException(status_code=400, detail="Bootstrap data already present")
    return {"message": "Bootstrap data created", "seeded": seeded}

# Utility endpoints
@app.get("/")
def root():
    return {"message": "Ratings Platform API running"}
