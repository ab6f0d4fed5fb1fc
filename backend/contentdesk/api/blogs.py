from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from contentdesk.api.deps import get_services, parse_form_json, read_upload
from contentdesk.schemas.common import MessageResponse
from contentdesk.schemas.post import BlogAnalytics, PostRead, PostWrite
from contentdesk.services.container import Services

router = APIRouter(tags=["blogs"])


def _image_fields(public_path: str) -> dict:
    # The thumbnail is the uploaded image itself
    return {"image": public_path, "thumbnail": public_path}


@router.get("/blogs", response_model=List[PostRead])
async def list_blogs(services: Services = Depends(get_services)):
    """List all blog posts, newest first."""
    return await services.posts.list()


@router.get("/blogs/featured", response_model=List[PostRead])
async def list_featured_blogs(services: Services = Depends(get_services)):
    return await services.posts.list_featured()


@router.get("/blogs/{blog_id}", response_model=PostRead)
async def get_blog(blog_id: str, services: Services = Depends(get_services)):
    """Fetch one post. Every successful fetch counts as one view."""
    return await services.posts.increment_views(blog_id)


@router.post("/blogs", response_model=PostRead, status_code=status.HTTP_201_CREATED)
async def create_blog(
    data: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    services: Services = Depends(get_services),
):
    """Create a post from a multipart body: JSON ``data`` plus an optional ``image``.

    Metadata is validated before the image is written. If persisting the post
    fails after the image was stored, the file stays behind unreferenced.
    """
    fields = parse_form_json(data, PostWrite)

    system_fields = {}
    upload = await read_upload(image, services.images)
    if upload is not None:
        stored = await services.images.store(upload.payload, upload.filename, upload.media_type)
        system_fields = _image_fields(stored.public_path)

    return await services.posts.create(fields, system_fields)


@router.put("/blogs/{blog_id}", response_model=PostRead)
async def update_blog(
    blog_id: str,
    data: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    services: Services = Depends(get_services),
):
    """Replace a post's fields. A new image replaces (and removes) the old file;
    without one, the current image is kept."""
    fields = parse_form_json(data, PostWrite)
    existing = await services.posts.get(blog_id)

    system_fields = {}
    upload = await read_upload(image, services.images)
    if upload is not None:
        stored = await services.images.replace(
            existing.image, upload.payload, upload.filename, upload.media_type
        )
        if existing.thumbnail and existing.thumbnail != existing.image:
            await services.images.delete(existing.thumbnail)
        system_fields = _image_fields(stored.public_path)

    return await services.posts.update(existing.id, fields, system_fields)


@router.delete("/blogs/{blog_id}", response_model=MessageResponse)
async def delete_blog(blog_id: str, services: Services = Depends(get_services)):
    post = await services.posts.delete(blog_id)
    for ref in {post.image, post.thumbnail}:
        await services.images.delete(ref)
    return MessageResponse(message="Blog deleted")


@router.get("/blogs-analytics", response_model=BlogAnalytics)
async def blogs_analytics(services: Services = Depends(get_services)):
    """Total number of posts and the sum of their view counters."""
    return await services.posts.analytics()
