"""
Agent Models
Practice-advisor agents backed by OpenAI assistants or chat prompts
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field


class AgentType(str, Enum):
    BRAIN_CONSULTANT = "BRAIN_CONSULTANT"
    MARKETING_COACHING = "MARKETING_COACHING"
    DATA_RETRIEVAL = "DATA_RETRIEVAL"
    PROFITABILITY_APPOINTMENT = "PROFITABILITY_APPOINTMENT"
    RECOMMENDATION = "RECOMMENDATION"
    ANALYSIS = "ANALYSIS"
    PATIENT_CARE = "PATIENT_CARE"
    OPERATIONS = "OPERATIONS"
    STAFF_TRAINING = "STAFF_TRAINING"
    LAB_CASE_MANAGER = "LAB_CASE_MANAGER"
    PROCEDURE_CODE = "PROCEDURE_CODE"
    SUPPLIES_MANAGER = "SUPPLIES_MANAGER"
    MARKETING_ROI = "MARKETING_ROI"
    HYGIENE_ANALYTICS = "HYGIENE_ANALYTICS"
    PATIENT_DEMOGRAPHICS = "PATIENT_DEMOGRAPHICS"
    OSHA_COMPLIANCE = "OSHA_COMPLIANCE"
    INSURANCE_VERIFICATION = "INSURANCE_VERIFICATION"
    DATA_ANALYSIS = "DATA_ANALYSIS"
    REVENUE_HACK = "REVENUE_HACK"
    STAFF_OPTIMIZATION = "STAFF_OPTIMIZATION"


class AgentRateLimit(BaseModel):
    rpm: int = 60
    tpm: int = 150000


class AgentRetryConfig(BaseModel):
    max_retries: int = Field(default=3, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1.0)
    initial_delay: float = Field(default=1.0, ge=0)  # seconds


class AgentConfig(BaseModel):
    """Configuration for one agent; the API key never leaves the process"""
    agent_type: AgentType
    assistant_id: Optional[str] = None
    model: str = "gpt-4o-mini"
    temperature: float = Field(default=0.7, ge=0, le=2)
    max_tokens: int = Field(default=1000, gt=0)
    system_prompt: Optional[str] = Field(default=None, exclude=True)
    rate_limit: AgentRateLimit = Field(default_factory=AgentRateLimit)
    retry: AgentRetryConfig = Field(default_factory=AgentRetryConfig)
    api_key: Optional[str] = Field(default=None, exclude=True, repr=False)


class AgentMessage(BaseModel):
    role: str  # user | assistant | system
    content: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AIError(BaseModel):
    code: str
    message: str
    retryable: bool = True


class AIResponse(BaseModel):
    content: str
    agent_type: Optional[AgentType] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    recommendations: List[str] = Field(default_factory=list)
    error: Optional[AIError] = None


class AgentQuery(BaseModel):
    """Request body for querying an agent or the orchestrator"""
    query: str = Field(..., min_length=1, max_length=8000)
    context: Optional[Dict[str, Any]] = None


class AgentInfo(BaseModel):
    agent_type: AgentType
    config: AgentConfig


class OrchestrationResult(BaseModel):
    summary: str
    recommendations: List[str] = Field(default_factory=list)
    metrics: Dict[str, Any] = Field(default_factory=dict)
    agents_involved: List[AgentType] = Field(default_factory=list)
