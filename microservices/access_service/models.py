"""
Access Service Data Models

Roles, memberships, assignments and the AccessResult capability record.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ====================
# Enums
# ====================


class BrandRole(str, Enum):
    """Membership role inside a brand"""
    AGENCY_ADMIN = "agency_admin"
    FINANCE = "finance"
    CAMPAIGN_MANAGER = "campaign_manager"


class AccessRole(str, Enum):
    """Effective role resolved for a principal"""
    ADMIN = "admin"
    AGENCY_ADMIN = "agency_admin"
    FINANCE = "finance"
    CAMPAIGN_MANAGER = "campaign_manager"
    CREATOR = "creator"
    NONE = "none"


BRAND_SIDE_ROLES = {
    AccessRole.ADMIN,
    AccessRole.AGENCY_ADMIN,
    AccessRole.FINANCE,
    AccessRole.CAMPAIGN_MANAGER,
}


# ====================
# Core Models
# ====================


class Brand(BaseModel):
    """Brand profile; user_id is the owner"""
    id: str
    user_id: str
    name: Optional[str] = None


class BrandMembership(BaseModel):
    brand_id: str
    user_id: str
    role: BrandRole
    is_default: bool = False
    is_owner: bool = False
    brand_name: Optional[str] = None


class CampaignManagerAssignment(BaseModel):
    """Grants a non-owner brand user operational access to one campaign"""
    id: str
    campaign_id: str
    user_id: str
    assigned_by: Optional[str] = None
    created_at: Optional[datetime] = None


class CampaignSummary(BaseModel):
    id: str
    brand_id: str
    name: Optional[str] = None
    status: str = "draft"
    created_at: Optional[datetime] = None


class AccessResult(BaseModel):
    """
    Effective capabilities of a principal for a brand/campaign pair.

    A negative result is a normal value, never an exception.
    """
    role: AccessRole = AccessRole.NONE
    can_access_campaign: bool = False
    is_owner: bool = False
    is_admin: bool = False
    brand_id: Optional[str] = None
    campaign_id: Optional[str] = None
    via_invitation: bool = False
    financial_only: bool = False

    @property
    def is_brand_side(self) -> bool:
        return self.role in BRAND_SIDE_ROLES

    @property
    def can_operate_campaign(self) -> bool:
        """Brand-side access to operational campaign detail"""
        return self.can_access_campaign and self.is_brand_side and not self.financial_only

    @property
    def can_manage_team(self) -> bool:
        return self.is_admin or self.role == AccessRole.AGENCY_ADMIN


# ====================
# Request/Response Models
# ====================


class ResolveAccessRequest(BaseModel):
    brand_id: Optional[str] = None
    campaign_id: Optional[str] = None


class AssignManagerRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class AssignmentListResponse(BaseModel):
    campaign_id: str
    assignments: List[CampaignManagerAssignment] = Field(default_factory=list)


class CampaignListResponse(BaseModel):
    campaigns: List[CampaignSummary] = Field(default_factory=list)
    total: int = 0


class MembershipListResponse(BaseModel):
    memberships: List[BrandMembership] = Field(default_factory=list)
    default_brand_id: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    port: int
    version: str
    dependencies: Dict[str, Any] = Field(default_factory=dict)
