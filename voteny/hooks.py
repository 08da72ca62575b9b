"""Callbacks VoteNY registers with the host wiki."""

import re
from collections.abc import Callable
from typing import Any

from loguru import logger

from .aggregates import VoteAggregates
from .exceptions import UnsupportedDatabaseError
from .host import SFH_NO_HASH, PageTitleFactory, Parser, RenameUserSQL, Title, TitleFactory
from .storage import VoteRepository, schema_file
from .storage.schema import DatabaseUpdater
from .widgets import VOTE_RIGHT, VoteBox, VoteStars

MAGIC_WORDS = ("NUMBEROFVOTES", "NUMBEROFVOTESPAGE", "SCOREPAGE")

STYLE_MODULES = ("ext.voteNY.styles",)
SCRIPT_MODULES = ("ext.voteNY.scripts",)

WIDGETS = {0: VoteBox, 1: VoteStars}

_TYPE_LINE = re.compile(r"^\s*type\s*=\s*(.*)", re.MULTILINE | re.IGNORECASE)


def format_number(value: int | float) -> str:
    """Render an aggregate the way it appears in page text."""
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return f"{value:.14g}"
    return str(value)


def widget_type(text: str | None, args: dict[str, str]) -> int:
    """Widget type from a ``type=`` line in the tag body, else the ``type`` attribute.

    Unknown or malformed values give the box widget (0).
    """
    match = _TYPE_LINE.search(text or "")
    raw = match.group(1) if match else args.get("type")
    if not raw:
        return 0
    try:
        return int(raw.strip())
    except ValueError:
        return 0


class VoteHooks:
    """Hook handlers bound to the aggregate lookups and vote storage."""

    def __init__(
        self,
        aggregates: VoteAggregates,
        repository: VoteRepository,
        titles: TitleFactory | None = None,
    ) -> None:
        self.aggregates = aggregates
        self.repository = repository
        self.titles = titles if titles is not None else PageTitleFactory()

    def handlers(self) -> dict[str, list[Callable[..., Any]]]:
        """Host event name -> callbacks, in registration order."""
        return {
            "ParserFirstCallInit": [
                self.register_parser_hook,
                self.setup_number_of_votes_page_parser,
                self.setup_score_page_parser,
            ],
            "ParserGetVariableValueSwitch": [self.assign_value_to_magic_word],
            "MagicWordwgVariableIDs": [self.register_variable_id],
            "RenameUserSQL": [self.on_user_rename],
            "LoadExtensionSchemaUpdates": [self.add_table],
        }

    def register_parser_hook(self, parser: Parser) -> bool:
        """Set up the <vote> tag."""
        parser.set_hook("vote", self.render_vote)
        return True

    async def render_vote(self, text: str | None, args: dict[str, str], parser: Parser) -> str | None:
        """Render the <vote> tag.

        Args:
            text: Tag body. A ``type=<n>`` line in it picks the widget.
            args: Tag attributes; ``type`` is used when the body has no type line.
            parser: The parser rendering the page.

        Returns:
            Widget HTML, or None when the parser has no page title.
        """
        # Pages carrying a widget are never served from the parser cache.
        parser.disable_cache()

        parser.output.add_module_styles(*STYLE_MODULES)
        if parser.user.is_allowed(VOTE_RIGHT):
            parser.output.add_modules(*SCRIPT_MODULES)

        title = parser.title
        if title is None:
            return None

        widget_class = WIDGETS.get(widget_type(text, args), VoteBox)
        widget = widget_class(title.article_id, parser.user, self.aggregates, self.repository)
        return await widget.display()

    @staticmethod
    def on_user_rename(rename_user_sql: RenameUserSQL) -> bool:
        """Tell the user rename tool which vote columns hold the user."""
        rename_user_sql.tables["vote"] = ("username", "vote_user_id")
        return True

    async def assign_value_to_magic_word(self, parser: Parser, magic_word_id: str) -> str | None:
        """Value for one of our magic words, or None if the id is not ours."""
        if magic_word_id == "NUMBEROFVOTES":
            return format_number(await self.aggregates.number_of_votes())
        if magic_word_id == "NUMBEROFVOTESPAGE":
            return format_number(await self.get_number_of_votes_page(parser.title))
        if magic_word_id == "SCOREPAGE":
            return format_number(await self.get_score_page(parser.title))
        return None

    async def get_number_of_votes_page(self, title: Title | None) -> int:
        """Number of votes for the given page."""
        if title is None or not title.article_id:
            return 0
        return await self.aggregates.number_of_votes_page(title.article_id)

    async def get_score_page(self, title: Title | None) -> float:
        """Average score for the given page."""
        if title is None or not title.article_id:
            return 0.0
        return await self.aggregates.score_page(title.article_id)

    def _resolve_title(self, parser: Parser, pagename: str) -> Title | None:
        title = self.titles.new_from_text(pagename)
        if title is None:
            logger.debug(f"Invalid page name {pagename!r}, using the current page")
            return parser.title
        return title

    async def number_of_votes_page_parser(self, parser: Parser, pagename: str = "") -> str:
        """{{NUMBEROFVOTESPAGE:<page>}}"""
        title = self._resolve_title(parser, pagename)
        return format_number(await self.get_number_of_votes_page(title))

    async def score_page_parser(self, parser: Parser, pagename: str = "") -> str:
        """{{SCOREPAGE:<page>}}"""
        title = self._resolve_title(parser, pagename)
        return format_number(await self.get_score_page(title))

    @staticmethod
    def register_variable_id(variable_ids: list[str]) -> bool:
        """Register the magic word ids."""
        variable_ids.extend(MAGIC_WORDS)
        return True

    def setup_number_of_votes_page_parser(self, parser: Parser) -> bool:
        parser.set_function_hook("NUMBEROFVOTESPAGE", self.number_of_votes_page_parser, SFH_NO_HASH)
        return True

    def setup_score_page_parser(self, parser: Parser) -> bool:
        parser.set_function_hook("SCOREPAGE", self.score_page_parser, SFH_NO_HASH)
        return True

    @staticmethod
    def add_table(updater: DatabaseUpdater) -> bool:
        """Queue creation of the vote table for the updater's database engine.

        Raises:
            UnsupportedDatabaseError: No table definition exists for the engine.
        """
        engine = updater.db_type
        path = schema_file(engine)
        if not path.exists():
            raise UnsupportedDatabaseError(engine)

        updater.add_extension_update(("addTable", "vote", str(path), True))
        return True
