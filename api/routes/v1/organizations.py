"""
Organization, department and staff endpoints.
"""

from fastapi import APIRouter, Depends, Path, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_clock, get_current_user, get_notifier, get_pagination_params
from api.schemas.common import ApiResponse, PaginatedResponse, PaginationParams
from api.schemas.organizations import (
    DepartmentCreate,
    DepartmentOut,
    MembershipOut,
    OrganizationCreate,
    OrganizationOut,
    SiteStaffOut,
    StaffMemberOut,
    member_row,
    membership_row,
    staff_row,
)
from api.services import organizations as organization_service
from api.services.notifications import Notifier
from core.utils.datetime import Clock
from database.engine import get_db
from database.models.users import User

router = APIRouter(tags=["Organizations"])


@router.post(
    "/organizations",
    summary="Create Organization",
    description="Create an organization with the caller as primary COO, or join an existing one of the same name.",
)
async def create_organization(
    body: OrganizationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    result = await organization_service.create_organization(
        db,
        current_user,
        name=body.name,
        industry=body.industry,
        company_size=body.company_size,
        clock=clock,
    )
    payload = ApiResponse.ok(
        {
            "organization": OrganizationOut.model_validate(result.organization),
            "membership": MembershipOut.model_validate(result.membership),
        },
        result.message,
    )
    return JSONResponse(
        payload,
        status_code=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK,
    )


@router.get("/organizations", summary="List My Organizations")
async def list_my_organizations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Organizations the caller belongs to, primary first."""
    rows = await organization_service.list_my_organizations(db, current_user)
    return ApiResponse.ok(
        {"organizations": [membership_row(org, membership) for org, membership in rows]}
    )


@router.get("/organizations/{organization_id}", summary="Get Organization")
async def get_organization(
    organization_id: int = Path(..., description="Organization ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    organization = await organization_service.get_organization(db, current_user, organization_id)
    return ApiResponse.ok({"organization": OrganizationOut.model_validate(organization)})


@router.get("/organizations/{organization_id}/users", summary="List Organization Members")
async def list_organization_users(
    organization_id: int = Path(..., description="Organization ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    members = await organization_service.list_organization_users(
        db, current_user, organization_id
    )
    return ApiResponse.ok({"users": [member_row(view) for view in members]})


@router.post(
    "/organizations/{organization_id}/departments",
    status_code=status.HTTP_201_CREATED,
    summary="Create Department",
    description="Requires membership role coo, hr_coordinator or hr_coo.",
)
async def create_department(
    body: DepartmentCreate,
    organization_id: int = Path(..., description="Organization ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    department = await organization_service.create_department(
        db,
        current_user,
        organization_id,
        name=body.name,
        description=body.description,
        clock=clock,
    )
    return ApiResponse.ok(
        {"department": DepartmentOut.model_validate(department)},
        "Department created successfully",
    )


@router.get("/organizations/{organization_id}/departments", summary="List Departments")
async def list_departments(
    organization_id: int = Path(..., description="Organization ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    departments = await organization_service.list_departments(db, current_user, organization_id)
    return ApiResponse.ok(
        {"departments": [DepartmentOut.model_validate(d) for d in departments]}
    )


@router.get(
    "/organizations/{organization_id}/staff",
    summary="List Organization Staff",
    description="Active site staff, newest hires first. Clients, or HR members with role hr_coo.",
)
async def list_organization_staff(
    organization_id: int = Path(..., description="Organization ID"),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await organization_service.list_organization_staff(
        db, current_user, organization_id, pagination
    )
    page = PaginatedResponse[StaffMemberOut].create(
        [staff_row(view) for view in items], total, pagination
    )
    return ApiResponse.ok(page)


@router.post(
    "/organizations/{organization_id}/staff/{staff_id}/resign",
    summary="End Staff Engagement",
    description="Requires membership role coo or hr_coo.",
)
async def resign_staff(
    organization_id: int = Path(..., description="Organization ID"),
    staff_id: int = Path(..., description="Site staff record ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    staff = await organization_service.resign_staff(
        db, current_user, organization_id, staff_id, notifier=notifier, clock=clock
    )
    return ApiResponse.ok(
        {"staff": SiteStaffOut.model_validate(staff)}, "Staff member marked as resigned"
    )

@router.get("/staff/me", tags=["Staff"], summary="My Staff Record")
async def get_my_staff_record(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's active site staff record."""
    staff = await organization_service.get_my_staff_record(db, current_user)
    return ApiResponse.ok({"staff": SiteStaffOut.model_validate(staff)})
