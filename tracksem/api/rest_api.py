"""
REST API implementation for TrackSem using FastAPI.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from fastapi import FastAPI, HTTPException, Depends, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from .. import __version__
from ..core.entities import Course, Component, SubItem, User
from ..core.exceptions import AuthorizationError, ResourceNotFoundError, ValidationError
from ..core.grading import Projection
from ..core.interfaces import IdentityProvider
from ..services import GradebookService


logger = logging.getLogger(__name__)

CALLBACK_FAILED_URL = "/auth?error=oauth_callback_failed"


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# Pydantic models for API
class CourseCreate(CamelModel):
    name: Optional[str] = None
    full_name: Optional[str] = Field(None, alias="fullName")
    color: Optional[str] = None


class IdRequest(CamelModel):
    id: Optional[str] = None


class SeedRequest(CamelModel):
    branch: Optional[str] = None
    semester: Optional[int] = None


class ComponentCreate(CamelModel):
    course_id: Optional[str] = Field(None, alias="courseId")
    id: Optional[str] = None
    name: Optional[str] = None


class SubItemCreate(CamelModel):
    component_id: Optional[str] = Field(None, alias="componentId")
    id: Optional[str] = None
    name: Optional[str] = None
    max_score: Optional[float] = Field(None, alias="maxScore")


class SubItemDelete(CamelModel):
    id: Optional[str] = None
    component_id: Optional[str] = Field(None, alias="componentId")


class FieldUpdate(CamelModel):
    id: Optional[str] = None
    field: Optional[str] = None
    value: Any = None


class SubItemResponse(CamelModel):
    id: str
    name: str
    score: Optional[float] = None
    max_score: float = Field(..., alias="maxScore")


class ComponentResponse(CamelModel):
    id: str
    name: str
    weight: float
    max_score: float = Field(..., alias="maxScore")
    score: Optional[float] = None
    sub_items: Optional[List[SubItemResponse]] = Field(None, alias="subItems")
    best_of: Optional[int] = Field(None, alias="bestOf")


class CourseResponse(CamelModel):
    id: str
    name: str
    full_name: str = Field(..., alias="fullName")
    color: str
    components: List[ComponentResponse] = []


class ProjectionResponse(CamelModel):
    grade: Optional[float] = None
    letter: str
    color: str
    filled: int
    total: int
    total_weight: float = Field(..., alias="totalWeight")


class OkResponse(CamelModel):
    ok: bool = True


class SubItemDeleteResponse(OkResponse):
    remaining: int


class SessionResponse(CamelModel):
    id: str
    email: Optional[str] = None


@contextmanager
def _api_errors(action: str):
    """Translate domain errors into HTTP responses."""
    try:
        yield
    except HTTPException:
        raise
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AuthorizationError:
        raise HTTPException(status_code=401, detail="Unauthorized")
    except Exception:
        logger.exception("Failed to %s", action)
        raise HTTPException(status_code=500, detail="Internal error")


def _safe_next(next_path: Optional[str]) -> str:
    """Only allow same-site relative redirects."""
    if not next_path or not next_path.startswith("/") or next_path.startswith("//"):
        return "/"
    return next_path


class TrackSemRestAPI:
    """REST API implementation for TrackSem."""

    def __init__(self, gradebook: GradebookService, identity: IdentityProvider,
                 config: Optional[Dict[str, Any]] = None):
        self._gradebook = gradebook
        self._identity = identity
        self._config = config or {}
        self._session_cookie = self._config.get('session_cookie', 'tracksem-session')
        self._verifier_cookie = self._config.get('code_verifier_cookie', 'tracksem-code-verifier')
        self._cookie_secure = bool(self._config.get('cookie_secure', False))

        # Create FastAPI app
        self.app = FastAPI(
            title="TrackSem API",
            description="Semester grade tracking with live grade projection",
            version=__version__,
            docs_url="/docs",
            redoc_url="/redoc"
        )

        # Credentialed CORS cannot use a wildcard origin
        origins = self._config.get('cors_origins', ['*'])
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials='*' not in origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        # Setup routes
        self._setup_routes()

    def current_user(self, request: Request) -> User:
        """Resolve the session cookie (or bearer token) to a validated user."""
        token = request.cookies.get(self._session_cookie)
        if not token:
            authorization = request.headers.get("Authorization", "")
            if authorization.lower().startswith("bearer "):
                token = authorization[7:].strip()

        user = self._identity.get_user(token) if token else None
        if user is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
        return user

    def _setup_routes(self):
        """Setup API routes."""
        app = self.app
        gradebook = self._gradebook
        current_user = self.current_user

        @app.get("/", response_model=Dict[str, str])
        async def root():
            """Root endpoint."""
            return {
                "message": "TrackSem API",
                "version": __version__,
                "docs": "/docs"
            }

        @app.get("/health", response_model=Dict[str, str])
        async def health_check():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

        @app.get("/api/session", response_model=SessionResponse)
        def get_session(user: User = Depends(current_user)):
            """The signed-in user."""
            return SessionResponse(id=user.id, email=user.email)

        # Course endpoints
        @app.get("/api/courses", response_model=List[CourseResponse])
        def list_courses(user: User = Depends(current_user)):
            """All courses of the user with components and sub-items."""
            with _api_errors("list courses"):
                return [self._course_to_response(c) for c in gradebook.list_courses(user)]

        @app.post("/api/courses", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
        def create_course(body: CourseCreate, user: User = Depends(current_user)):
            """Add a new course with the default components."""
            with _api_errors("create course"):
                course = gradebook.add_course(user, body.name, body.full_name, body.color)
                return self._course_to_response(course)

        @app.delete("/api/courses", response_model=OkResponse)
        def delete_course(body: IdRequest, user: User = Depends(current_user)):
            """Delete a course; its components and sub-items go with it."""
            with _api_errors("delete course"):
                gradebook.delete_course(user, body.id)
                return OkResponse()

        @app.post("/api/courses/seed", response_model=List[CourseResponse])
        def seed_courses(body: SeedRequest, user: User = Depends(current_user)):
            """Seed courses from the catalog for a branch and semester."""
            with _api_errors("seed courses"):
                if not body.branch or body.semester is None:
                    raise ValidationError("Missing fields")
                courses = gradebook.seed_courses(user, body.branch, body.semester)
                return [self._course_to_response(c) for c in courses]

        @app.post("/api/courses/{course_id}/reset", response_model=OkResponse)
        def reset_course(course_id: str, user: User = Depends(current_user)):
            """Reset a course to its default components."""
            with _api_errors("reset course"):
                gradebook.reset_course(user, course_id)
                return OkResponse()

        @app.get("/api/courses/{course_id}/projection", response_model=ProjectionResponse)
        def get_projection(course_id: str, user: User = Depends(current_user)):
            """Projected grade over the filled components."""
            with _api_errors("project course"):
                return self._projection_to_response(gradebook.project(user, course_id))

        # Component endpoints
        @app.post("/api/components", response_model=ComponentResponse, status_code=status.HTTP_201_CREATED)
        def create_component(body: ComponentCreate, user: User = Depends(current_user)):
            """Add a new component."""
            with _api_errors("create component"):
                component = gradebook.add_component(user, body.course_id, name=body.name, component_id=body.id)
                return self._component_to_response(component)

        @app.patch("/api/components", response_model=OkResponse)
        def update_component(body: FieldUpdate, user: User = Depends(current_user)):
            """Update a single component field."""
            with _api_errors("update component"):
                if not body.id or not body.field:
                    raise ValidationError("Missing fields")
                gradebook.update_component(user, body.id, body.field, body.value)
                return OkResponse()

        @app.delete("/api/components", response_model=OkResponse)
        def delete_component(body: IdRequest, user: User = Depends(current_user)):
            """Remove a component."""
            with _api_errors("delete component"):
                if not body.id:
                    raise ValidationError("Missing id")
                gradebook.delete_component(user, body.id)
                return OkResponse()

        # Sub-item endpoints
        @app.post("/api/sub-items", response_model=SubItemResponse, status_code=status.HTTP_201_CREATED)
        def create_sub_item(body: SubItemCreate, user: User = Depends(current_user)):
            """Add a new sub-item."""
            with _api_errors("create sub-item"):
                sub_item = gradebook.add_sub_item(
                    user, body.component_id, name=body.name,
                    max_score=body.max_score, sub_item_id=body.id
                )
                return self._sub_item_to_response(sub_item)

        @app.patch("/api/sub-items", response_model=OkResponse)
        def update_sub_item(body: FieldUpdate, user: User = Depends(current_user)):
            """Update a single sub-item field."""
            with _api_errors("update sub-item"):
                if not body.id or not body.field:
                    raise ValidationError("Missing fields")
                gradebook.update_sub_item(user, body.id, body.field, body.value)
                return OkResponse()

        @app.delete("/api/sub-items", response_model=SubItemDeleteResponse)
        def delete_sub_item(body: SubItemDelete, user: User = Depends(current_user)):
            """Remove a sub-item; returns the remaining count so clients can adjust best-of."""
            with _api_errors("delete sub-item"):
                if not body.id:
                    raise ValidationError("Missing id")
                remaining = gradebook.delete_sub_item(user, body.id)
                return SubItemDeleteResponse(remaining=remaining)

        # Auth endpoints
        @app.get("/auth/callback")
        def auth_callback(request: Request, code: Optional[str] = Query(None),
                          next_path: Optional[str] = Query(None, alias="next")):
            """
            The identity provider redirects here after OAuth sign-in with a
            one-time code. Exchange it for a session, store the access token
            in the session cookie and continue to the app.
            """
            if code:
                try:
                    session = self._identity.exchange_code_for_session(
                        code, request.cookies.get(self._verifier_cookie)
                    )
                except AuthorizationError as e:
                    logger.warning("OAuth callback failed: %s", e)
                else:
                    response = RedirectResponse(_safe_next(next_path), status_code=status.HTTP_303_SEE_OTHER)
                    response.set_cookie(
                        self._session_cookie,
                        session.access_token,
                        max_age=session.expires_in,
                        path="/",
                        httponly=True,
                        secure=self._cookie_secure,
                        samesite="lax",
                    )
                    response.delete_cookie(self._verifier_cookie, path="/")
                    return response

            return RedirectResponse(CALLBACK_FAILED_URL, status_code=status.HTTP_303_SEE_OTHER)

        @app.post("/auth/signout", response_model=OkResponse)
        def sign_out():
            """Clear the session cookie."""
            response = JSONResponse({"ok": True})
            response.delete_cookie(self._session_cookie, path="/")
            return response

    def _sub_item_to_response(self, sub_item: SubItem) -> SubItemResponse:
        """Convert SubItem entity to response model."""
        return SubItemResponse.model_validate(sub_item.to_dict())

    def _component_to_response(self, component: Component) -> ComponentResponse:
        """Convert Component entity to response model."""
        return ComponentResponse.model_validate(component.to_dict())

    def _course_to_response(self, course: Course) -> CourseResponse:
        """Convert Course entity to response model."""
        return CourseResponse.model_validate(course.to_dict())

    def _projection_to_response(self, projection: Projection) -> ProjectionResponse:
        return ProjectionResponse.model_validate(projection.to_dict())
