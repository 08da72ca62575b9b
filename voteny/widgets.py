"""Voting widgets rendered into pages by the <vote> tag."""

from typing import Any

from jinja2 import Environment, PackageLoader, select_autoescape

from .aggregates import VoteAggregates
from .config import settings
from .host import User
from .storage import VoteRepository

VOTE_RIGHT = "voteny"

templates = Environment(
    loader=PackageLoader("voteny", "templates"),
    autoescape=select_autoescape(),
    trim_blocks=True,
    lstrip_blocks=True,
)


class VoteBox:
    """Vote count box with a single vote/unvote action."""

    template = "vote_box.html"

    def __init__(
        self,
        page_id: int,
        user: User,
        aggregates: VoteAggregates,
        repository: VoteRepository,
    ) -> None:
        self.page_id = page_id
        self.user = user
        self.aggregates = aggregates
        self.repository = repository

    async def user_vote(self) -> int | None:
        """The user's own vote value on this page, if any."""
        if not self.user.id:
            return None
        vote = await self.repository.get_vote(self.page_id, self.user.id)
        return vote["value"] if vote else None

    async def context(self) -> dict[str, Any]:
        return {
            "page_id": self.page_id,
            "count": await self.aggregates.number_of_votes_page(self.page_id),
            "can_vote": self.user.is_allowed(VOTE_RIGHT),
            "user_vote": await self.user_vote(),
        }

    async def display(self) -> str:
        """Render the widget HTML."""
        return templates.get_template(self.template).render(**await self.context())


class VoteStars(VoteBox):
    """Star rating with the page average and the user's own rating."""

    template = "vote_stars.html"

    async def context(self) -> dict[str, Any]:
        context = await super().context()
        score = await self.aggregates.score_page(self.page_id)
        filled = int(score + 0.5)
        context.update(
            score=f"{score:.1f}",
            stars=[(value, value <= filled) for value in range(1, settings.vote_max + 1)],
        )
        return context
