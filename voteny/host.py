"""Seams to the wiki that hosts the extension.

The protocols describe the parts of the host's parser, titles and users the
hooks touch. The small dataclasses below implement them for the HTTP
service, which renders widgets outside of a full wiki parse.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

# Parser function flag: the function is called as {{NAME:...}} rather than {{#name:...}}
SFH_NO_HASH = 1


class Title(Protocol):
    """A page title."""

    @property
    def article_id(self) -> int:
        """Page identifier, 0 for pages that do not exist."""
        ...

    @property
    def text(self) -> str:
        """Display text of the title."""
        ...


class User(Protocol):
    """The user a page is rendered for."""

    @property
    def id(self) -> int:
        """User identifier, 0 for anonymous users."""
        ...

    @property
    def name(self) -> str:
        """User name (or address for anonymous users)."""
        ...

    def is_allowed(self, right: str) -> bool:
        """Whether the user holds a permission."""
        ...


class ParserOutput(Protocol):
    """Output of a parse; collects the client modules a page needs."""

    def add_module_styles(self, *modules: str) -> None: ...

    def add_modules(self, *modules: str) -> None: ...


class Parser(Protocol):
    """The host's content parser during a single parse."""

    @property
    def title(self) -> Title | None: ...

    @property
    def user(self) -> User: ...

    @property
    def output(self) -> ParserOutput: ...

    def disable_cache(self) -> None: ...

    def set_hook(self, tag: str, callback: Callable[..., Any]) -> None: ...

    def set_function_hook(self, name: str, callback: Callable[..., Any], flags: int = 0) -> None: ...


class TitleFactory(Protocol):
    """Resolves page names to titles."""

    def new_from_text(self, text: str) -> Title | None: ...


class RenameUserSQL(Protocol):
    """Table/column registry used when a user is renamed."""

    tables: dict[str, tuple[str, str]]


@dataclass(frozen=True)
class PageTitle:
    article_id: int
    text: str = ""


@dataclass(frozen=True)
class SiteUser:
    id: int
    name: str
    rights: frozenset[str] = frozenset()

    @property
    def is_anonymous(self) -> bool:
        return self.id == 0

    def is_allowed(self, right: str) -> bool:
        return right in self.rights


ANONYMOUS = SiteUser(id=0, name="127.0.0.1")

# Characters that can never appear in a page name
_ILLEGAL_TITLE_CHARS = re.compile(r"[<>\[\]|{}\x00-\x1f\x7f]")


class PageTitleFactory:
    """Resolves page names against a set of known pages.

    Well-formed names of pages that are not known still give a title, with
    article id 0, so they count as pages without votes. Only empty or
    malformed names give None.
    """

    def __init__(self, *pages: PageTitle) -> None:
        self.pages = {self.normalize(page.text): page for page in pages}

    @staticmethod
    def normalize(text: str) -> str:
        """Canonical form of a page name.

        Drops any ``#fragment``, turns underscores into spaces, collapses
        whitespace and upper-cases the first letter.
        """
        name = " ".join(text.partition("#")[0].replace("_", " ").split())
        return name[:1].upper() + name[1:]

    def new_from_text(self, text: str) -> PageTitle | None:
        name = self.normalize(text or "")
        if not name or _ILLEGAL_TITLE_CHARS.search(name):
            return None
        return self.pages.get(name) or PageTitle(article_id=0, text=name)


@dataclass
class RenderOutput:
    module_styles: list[str] = field(default_factory=list)
    modules: list[str] = field(default_factory=list)

    def add_module_styles(self, *modules: str) -> None:
        self.module_styles.extend(m for m in modules if m not in self.module_styles)

    def add_modules(self, *modules: str) -> None:
        self.modules.extend(m for m in modules if m not in self.modules)


@dataclass
class RenderContext:
    """Stand-in parser for rendering hooks outside of a wiki parse."""

    title: PageTitle | None
    user: SiteUser = ANONYMOUS
    output: RenderOutput = field(default_factory=RenderOutput)
    cacheable: bool = True
    tag_hooks: dict[str, Callable[..., Any]] = field(default_factory=dict)
    function_hooks: dict[str, tuple[Callable[..., Any], int]] = field(default_factory=dict)

    def disable_cache(self) -> None:
        self.cacheable = False

    def set_hook(self, tag: str, callback: Callable[..., Any]) -> None:
        self.tag_hooks[tag] = callback

    def set_function_hook(self, name: str, callback: Callable[..., Any], flags: int = 0) -> None:
        self.function_hooks[name] = (callback, flags)
