"""
FastAPI dependency functions.

Provides authentication, database sessions and the service objects used by
the route handlers. Stateless services are built per request; clients that
hold caches or connections are process-wide singletons.
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from insightflow.core.database import get_db
from insightflow.core.security import decode_access_token
from insightflow.models.user import User
from insightflow.repositories.user import UserRepository
from insightflow.services.analysis_service import AnalysisService
from insightflow.services.company_analysis import CompanyAnalysisService
from insightflow.services.comparison_service import ComparisonService
from insightflow.services.interfaces.llm_client import ILLMClient
from insightflow.services.linkedin_service import LinkedInService
from insightflow.services.llm_client import OllamaClient
from insightflow.services.rag_service import RagService
from insightflow.services.scraping import ScrapingService
from insightflow.services.search_client import TavilyClient
from insightflow.services.sentiment_charts import SentimentChartService
from insightflow.services.sentiment_fetcher import SentimentFetcherService
from insightflow.services.sentiment_scheduler import SentimentScheduler
from insightflow.services.sentiment_trends import SentimentTrendService
from insightflow.services.visualization import VisualizationService


# HTTP Bearer token scheme (missing header handled below as 401)
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Resolve the authenticated user from the bearer token.

    The token subject is looked up as a username first, then as an email.

    Raises:
        HTTPException 401: Missing, invalid or expired token, or unknown user
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    token_data = decode_access_token(credentials.credentials)
    if token_data is None or not token_data.username:
        raise credentials_exception

    users = UserRepository(db)
    user = await users.get_by_username(token_data.username)
    if user is None:
        user = await users.get_by_email(token_data.username)
    if user is None:
        raise credentials_exception

    return user


@lru_cache
def get_llm_client() -> ILLMClient:
    return OllamaClient()


@lru_cache
def get_search_client() -> TavilyClient:
    return TavilyClient()


@lru_cache
def get_scraper() -> ScrapingService:
    return ScrapingService()


@lru_cache
def get_sentiment_trend_service() -> SentimentTrendService:
    return SentimentTrendService()


@lru_cache
def get_sentiment_scheduler() -> SentimentScheduler:
    return SentimentScheduler(
        fetcher=SentimentFetcherService(get_llm_client()),
        trend_service=get_sentiment_trend_service(),
    )


LLMClient = Annotated[ILLMClient, Depends(get_llm_client)]


def get_analysis_service(llm_client: LLMClient) -> AnalysisService:
    return AnalysisService(llm_client)


def get_visualization_service() -> VisualizationService:
    return VisualizationService()


def get_sentiment_chart_service() -> SentimentChartService:
    return SentimentChartService()


def get_linkedin_service(
    analysis_service: Annotated[AnalysisService, Depends(get_analysis_service)],
    search_client: Annotated[TavilyClient, Depends(get_search_client)],
    scraper: Annotated[ScrapingService, Depends(get_scraper)],
) -> LinkedInService:
    return LinkedInService(search_client, scraper, analysis_service)


def get_rag_service(
    llm_client: LLMClient,
    analysis_service: Annotated[AnalysisService, Depends(get_analysis_service)],
    search_client: Annotated[TavilyClient, Depends(get_search_client)],
    scraper: Annotated[ScrapingService, Depends(get_scraper)],
) -> RagService:
    return RagService(llm_client, analysis_service, search_client, scraper)


def get_company_analysis_service(
    analysis_service: Annotated[AnalysisService, Depends(get_analysis_service)],
    rag_service: Annotated[RagService, Depends(get_rag_service)],
    linkedin_service: Annotated[LinkedInService, Depends(get_linkedin_service)],
    visualization_service: Annotated[VisualizationService, Depends(get_visualization_service)],
) -> CompanyAnalysisService:
    return CompanyAnalysisService(analysis_service, rag_service, linkedin_service, visualization_service)


def get_comparison_service(llm_client: LLMClient) -> ComparisonService:
    return ComparisonService(llm_client)


# Type aliases for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
AnalysisServiceDep = Annotated[AnalysisService, Depends(get_analysis_service)]
VisualizationServiceDep = Annotated[VisualizationService, Depends(get_visualization_service)]
LinkedInServiceDep = Annotated[LinkedInService, Depends(get_linkedin_service)]
RagServiceDep = Annotated[RagService, Depends(get_rag_service)]
CompanyAnalysisServiceDep = Annotated[CompanyAnalysisService, Depends(get_company_analysis_service)]
ComparisonServiceDep = Annotated[ComparisonService, Depends(get_comparison_service)]
SentimentSchedulerDep = Annotated[SentimentScheduler, Depends(get_sentiment_scheduler)]
SentimentTrendServiceDep = Annotated[SentimentTrendService, Depends(get_sentiment_trend_service)]
SentimentChartServiceDep = Annotated[SentimentChartService, Depends(get_sentiment_chart_service)]
