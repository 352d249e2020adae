"""Page operations for fetching and publishing Confluence pages.

This module provides the PageOperations class that ties the Confluence
client to the content converter: fetching a page tree and exporting it
as template markdown, and rendering configured templates to storage
format and upserting them.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from ..cli.models import PageConfig, PublishConfig
from ..confluence_client.api_wrapper import APIWrapper
from ..confluence_client.auth import Authenticator
from ..confluence_client.errors import (
    APIAccessError,
    PageNotFoundError,
)
from ..content_converter.errors import ConversionError
from ..content_converter.forward_converter import export_storage_to_template
from ..content_converter.markdown_renderer import render_page_to_storage
from ..models.confluence_page import ConfluencePage
from ..models.conversion_result import ConversionResult
from .filesafe import unique_filename
from .models import FetchResult, PageAction, PageResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4

_Rendered = Tuple[Optional[ConversionResult], Optional[str]]


class PageOperations:
    """High-level fetch and publish workflows over many pages.

    Every page is converted with its own conversion context, so pages are
    converted concurrently. Remote writes happen one page at a time with
    parents before their children.

    Usage:
        ops = PageOperations()

        # Export a page and its descendants as template markdown
        results = ops.fetch_page_tree("TEAM", "Handbook", "./docs", include_children=True)

        # Render and upsert the pages of a publish configuration
        results = ops.publish(ConfigLoader.load("publish-confluence.yaml"))
    """

    def __init__(self, api: Optional[APIWrapper] = None, max_workers: int = DEFAULT_MAX_WORKERS):
        """Initialize PageOperations with optional API wrapper.

        Args:
            api: APIWrapper instance. If None, creates one with
                 default authentication.
            max_workers: Threads used to convert pages
        """
        if api is None:
            auth = Authenticator()
            api = APIWrapper(auth)
        self.api = api
        self.max_workers = max_workers

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    def fetch_page_tree(
        self,
        space_key: str,
        title: str,
        output_dir: Path,
        include_children: bool = False,
        raw: bool = False,
    ) -> List[FetchResult]:
        """Fetch a page (and optionally its descendants) and write them to disk.

        Each page is written to ``output_dir`` under its filesafe title, as
        template markdown (``.md``) or, with ``raw``, as the untouched
        storage markup (``.xhtml``). A page whose markup cannot be parsed
        is reported in its FetchResult and does not stop the others.

        Args:
            space_key: Space containing the page
            title: Title of the root page
            output_dir: Directory the files are written to
            include_children: Also fetch all descendants of the page
            raw: Write storage markup instead of template markdown

        Returns:
            One FetchResult per page, root first

        Raises:
            PageNotFoundError: If the root page doesn't exist
            InvalidCredentialsError: If credentials are invalid
            APIUnreachableError: If the API is unreachable
        """
        data = self.api.get_page_by_title(space_key, title)
        if data is None:
            raise PageNotFoundError(page_id=title, space_key=space_key)

        pages = [ConfluencePage.from_api(data)]
        if include_children:
            pages.extend(self._collect_descendants(pages[0]))
        logger.info(f"Fetched {len(pages)} page(s) from space {space_key}")

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        extension = '.xhtml' if raw else '.md'
        taken: Set[str] = set()
        targets = [
            (page, output_dir / unique_filename(page.title, taken, extension))
            for page in pages
        ]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(lambda target: self._export_page(*target, raw), targets))

    def _collect_descendants(self, root: ConfluencePage) -> List[ConfluencePage]:
        """Breadth-first list of every page below ``root``."""
        descendants: List[ConfluencePage] = []
        queue = [root.page_id]
        while queue:
            page_id = queue.pop(0)
            for child_data in self.api.get_child_pages(page_id):
                child = ConfluencePage.from_api(child_data)
                descendants.append(child)
                queue.append(child.page_id)
        return descendants

    def _export_page(self, page: ConfluencePage, path: Path, raw: bool) -> FetchResult:
        try:
            if raw:
                content, warnings = page.content_storage, []
            else:
                result = export_storage_to_template(page.content_storage, document_key=page.title)
                content, warnings = result.content, result.warnings
            path.write_text(content, encoding='utf-8')
        except (ConversionError, OSError) as e:
            logger.error(f"Failed to export page '{page.title}' ({page.page_id}): {e}")
            return FetchResult(title=page.title, page_id=page.page_id, error=str(e))

        logger.debug(f"Wrote page '{page.title}' to {path}")
        return FetchResult(title=page.title, page_id=page.page_id, path=path, warnings=warnings)

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish(
        self,
        config: PublishConfig,
        include_comments: Optional[bool] = None,
        dry_run: bool = False,
    ) -> List[PageResult]:
        """Render every configured page and upsert it.

        All templates are rendered first (concurrently). Pages are then
        written parents before children so each child can be attached to
        its parent's page ID. A page that fails to render or upload is
        marked FAILED; its siblings continue and its descendants are
        marked SKIPPED.

        Args:
            config: Loaded publish configuration
            include_comments: Render ``comment=true`` macros; defaults to
                the configuration's ``include_comments``
            dry_run: Render and validate only; nothing is sent to Confluence

        Returns:
            One PageResult per configured page, parents before children

        Raises:
            PageNotFoundError: If ``parent_page_title`` doesn't exist
            InvalidCredentialsError: If credentials are invalid
            APIUnreachableError: If the API is unreachable
        """
        if include_comments is None:
            include_comments = config.include_comments

        pages = config.all_pages()
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            outcomes = list(executor.map(lambda page: self._render(page, include_comments), pages))
        rendered: Dict[int, _Rendered] = {id(page): outcome for page, outcome in zip(pages, outcomes)}

        parent_id = None
        if config.parent_page_title and not dry_run:
            parent_id = self._resolve_parent(config.space_key, config.parent_page_title)

        results: List[PageResult] = []
        self._publish_level(config.pages, parent_id, rendered, dry_run, results)

        failed = sum(1 for result in results if not result.success)
        logger.info(f"Published {len(results) - failed} of {len(results)} page(s)")
        return results

    def _resolve_parent(self, space_key: str, title: str) -> str:
        data = self.api.get_page_by_title(space_key, title, expand="version")
        if data is None:
            raise PageNotFoundError(page_id=title, space_key=space_key)
        return str(data["id"])

    def _render(self, page: PageConfig, include_comments: bool) -> _Rendered:
        """Render one page's template; errors are returned, not raised."""
        try:
            source = page.template_path.read_text(encoding='utf-8')
        except OSError as e:
            logger.error(f"Cannot read template {page.template_path}: {e}")
            return None, f"Cannot read template {page.template_path}: {e}"

        variables = {"pageTitle": page.page_title, **page.variables}
        try:
            result = render_page_to_storage(
                source,
                page.template_format,
                variables=variables,
                include_comments=include_comments,
                document_key=page.page_title,
            )
        except ConversionError as e:
            logger.error(f"Failed to render page '{page.page_title}': {e}")
            return None, str(e)
        return result, None

    def _publish_level(
        self,
        pages: List[PageConfig],
        parent_id: Optional[str],
        rendered: Dict[int, _Rendered],
        dry_run: bool,
        results: List[PageResult],
    ) -> None:
        for page in pages:
            result = self._publish_page(page, parent_id, rendered[id(page)], dry_run)
            results.append(result)
            if result.success:
                self._publish_level(page.child_pages, result.page_id, rendered, dry_run, results)
                continue

            for descendant in page.descendants():
                logger.warning(
                    f"Skipping page '{descendant.page_title}': "
                    f"parent '{page.page_title}' was not published"
                )
                results.append(PageResult(
                    title=descendant.page_title,
                    action=PageAction.SKIPPED,
                    error=f"Parent page '{page.page_title}' was not published",
                ))

    def _publish_page(
        self,
        page: PageConfig,
        parent_id: Optional[str],
        outcome: _Rendered,
        dry_run: bool,
    ) -> PageResult:
        conversion, error = outcome
        if conversion is None:
            return PageResult(title=page.page_title, action=PageAction.FAILED, error=error)

        if dry_run:
            return PageResult(
                title=page.page_title,
                action=PageAction.DRY_RUN,
                warnings=conversion.warnings,
                content=conversion.content,
            )

        try:
            data, created = self.api.upsert_page(
                page.space_key, page.page_title, conversion.content, parent_id
            )
        except (APIAccessError, PageNotFoundError) as e:
            logger.error(f"Failed to publish page '{page.page_title}': {e}")
            return PageResult(
                title=page.page_title,
                action=PageAction.FAILED,
                error=str(e),
                warnings=conversion.warnings,
            )

        action = PageAction.CREATED if created else PageAction.UPDATED
        logger.info(f"{action.value.capitalize()} page '{page.page_title}' ({data.get('id')})")
        return PageResult(
            title=page.page_title,
            action=action,
            page_id=str(data.get("id", "")),
            warnings=conversion.warnings,
        )
