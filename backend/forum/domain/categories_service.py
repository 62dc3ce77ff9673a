"""Category taxonomy operations."""

from __future__ import annotations

from uuid import UUID

from forum.domain import repo as repo_module
from forum.domain.exceptions import ConflictError, IntegrityError, NotFoundError, ValidationError
from forum.domain.lookup import ById, parse_id, parse_lookup
from forum.domain.models import Category
from forum.domain.slugs import category_slug
from forum.domain.views import ViewBuilder
from forum.infra.auth import AuthenticatedUser
from forum.obs import logging as obs_logging
from forum.schemas import dto

logger = obs_logging.get_logger("forum.categories")


class CategoriesService:
	def __init__(self, repository: repo_module.ForumRepository, views: ViewBuilder | None = None) -> None:
		self.repo = repository
		self.views = views or ViewBuilder(repository)

	async def _resolve(self, id_or_slug: str) -> Category | None:
		lookup = parse_lookup(id_or_slug)
		if isinstance(lookup, ById):
			return await self.repo.get_category(lookup.id)
		return await self.repo.get_category_by_slug(lookup.slug)

	async def _check_parent(self, parent_id: UUID | None, *, own_id: UUID | None = None) -> None:
		if parent_id is None:
			return
		if own_id is not None and parent_id == own_id:
			raise ValidationError("A category cannot be its own parent")
		if await self.repo.get_category(parent_id) is None:
			raise NotFoundError("Parent category not found")

	async def list_categories(self) -> list[dto.CategoryResponse]:
		categories = await self.repo.list_categories()
		return [dto.CategoryResponse.model_validate(category) for category in categories]

	async def get_category(self, id_or_slug: str) -> dto.CategoryDetailResponse:
		category = await self._resolve(id_or_slug)
		if category is None:
			raise NotFoundError("Category not found")
		children = await self.repo.list_child_categories(category.id)
		topics, _ = await self.repo.list_category_topics(category.id)
		detail = dto.CategoryDetailResponse.model_validate(category)
		detail.children = [dto.CategoryResponse.model_validate(child) for child in children]
		detail.topics = await self.views.topic_items(topics, with_post_count=True)
		return detail

	async def create_category(self, actor: AuthenticatedUser, payload: dto.CategoryCreateRequest) -> dto.CategoryMutationResponse:
		slug = category_slug(payload.name)
		if await self.repo.get_category_by_slug(slug) is not None:
			raise ConflictError("A category with this name already exists")
		await self._check_parent(payload.parent_category)
		category = await self.repo.create_category(
			name=payload.name,
			description=payload.description,
			slug=slug,
			order=payload.order,
			parent_category=payload.parent_category,
			created_by=actor.id,
		)
		logger.info("category_created", extra={"category": str(category.id), "slug": slug})
		return dto.CategoryMutationResponse(
			message="Category created successfully",
			category=dto.CategoryResponse.model_validate(category),
		)

	async def update_category(self, category_id: str, payload: dto.CategoryUpdateRequest) -> dto.CategoryMutationResponse:
		target_id = parse_id(category_id, "Invalid category ID")
		category = await self.repo.get_category(target_id)
		if category is None:
			raise NotFoundError("Category not found")
		changes = payload.model_dump(exclude_unset=True)
		if changes.get("name") is None:
			changes.pop("name", None)
		elif changes["name"] != category.name:
			slug = category_slug(changes["name"])
			existing = await self.repo.get_category_by_slug(slug)
			if existing is not None and existing.id != category.id:
				raise ConflictError("A category with this name already exists")
			changes["slug"] = slug
		for key in ("description", "order", "is_active"):
			if key in changes and changes[key] is None:
				changes.pop(key)
		if "parent_category" in changes:
			await self._check_parent(changes["parent_category"], own_id=category.id)
		updated = await self.repo.update_category(category.id, **changes)
		if updated is None:
			raise NotFoundError("Category not found")
		return dto.CategoryMutationResponse(
			message="Category updated successfully",
			category=dto.CategoryResponse.model_validate(updated),
		)

	async def delete_category(self, category_id: str) -> dto.MessageResponse:
		target_id = parse_id(category_id, "Invalid category ID")
		if await self.repo.get_category(target_id) is None:
			raise NotFoundError("Category not found")
		if await self.repo.count_child_categories(target_id):
			raise IntegrityError("Cannot delete category with subcategories. Move or delete them first.")
		if await self.repo.count_category_topics(target_id):
			raise IntegrityError("Cannot delete category with topics. Move or delete topics first.")
		await self.repo.delete_category(target_id)
		return dto.MessageResponse(message="Category deleted successfully")
