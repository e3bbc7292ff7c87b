"""
Database Schemas for the video sharing backend

Each Pydantic model maps to a MongoDB collection. The collection name is the lowercase of the class name.
References to other documents are stored as stringified ObjectIds.

Collections:
- User -> user
- Video -> video
- Comment -> comment
- Tweet -> tweet
- Playlist -> playlist
- Subscription -> subscription
- Like -> like
"""

from pydantic import BaseModel, Field, EmailStr, model_validator
from typing import Optional, List


class User(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password_hash: str = Field(..., description="pbkdf2_sha256 hash")
    avatar_url: Optional[str] = None
    bio: Optional[str] = None


class Video(BaseModel):
    user_id: str = Field(..., description="Owner user id as string")
    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=3, max_length=500)
    video_url: str
    thumbnail_url: str
    duration: float = Field(0.0, ge=0, description="Length in seconds")
    views_count: int = Field(0, ge=0)
    is_published: bool = True


class Comment(BaseModel):
    video_id: str
    user_id: str
    text: str = Field(..., min_length=1, max_length=500)


class Tweet(BaseModel):
    user_id: str
    content: str = Field(..., min_length=1, max_length=280)


class Playlist(BaseModel):
    user_id: str
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    videos: List[str] = Field(default_factory=list, description="Ordered video ids, no duplicates")


class Subscription(BaseModel):
    channel_id: str = Field(..., description="The user id of the channel being subscribed to")
    subscriber_id: str = Field(..., description="The user id of the subscriber")


class Like(BaseModel):
    user_id: str = Field(..., description="The user id of the actor")
    video_id: Optional[str] = None
    comment_id: Optional[str] = None
    tweet_id: Optional[str] = None

    @model_validator(mode="after")
    def one_target(self):
        targets = [t for t in (self.video_id, self.comment_id, self.tweet_id) if t is not None]
        if len(targets) != 1:
            raise ValueError("A like references exactly one of video, comment or tweet")
        return self
