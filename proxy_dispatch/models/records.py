"""
凭据存储中的记录模型

存储内容由外部写入（JSON 文本），这里只负责校验和读取：
- CurrentUserRecord: 当前用户，可能带有个人凭据
- PoolTokenRecord: 共享池中的一条凭据
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CurrentUserRecord(BaseModel):
    """当前用户记录"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = Field(None, description="用户 ID")
    username: str | None = Field(None, description="用户名，作为 x-user-username 发送")
    personal_auth_token: str | None = Field(
        None, alias="personalAuthToken", description="个人凭据"
    )


class PoolTokenRecord(BaseModel):
    """共享池凭据记录"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    token: str = Field(..., min_length=1, description="Bearer 凭据")
    created_at: datetime | None = Field(
        None, alias="createdAt", description="签发时间（ISO-8601），越新越可能有效"
    )
