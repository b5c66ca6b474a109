from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup

from shared.clients.websearch.WebSearchClientInterface import WebSearchClientInterface, WebSearchResult
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class WebSearchClientDuckduckgo(WebSearchClientInterface):
    """Scrapes the key-less DuckDuckGo HTML results page."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://html.duckduckgo.com", val_type="string")
        self._user_agent = self.get_config_val("USER_AGENT", default=DEFAULT_USER_AGENT, val_type="string")
        self._region = self.get_config_val("REGION", default="vn-vi", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Duckduckgo"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://html.duckduckgo.com"),
            EnvConfig(env_key="USER_AGENT", val_type="string", default=DEFAULT_USER_AGENT),
            EnvConfig(env_key="REGION", val_type="string", default="vn-vi"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        # no key, but the html endpoint rejects requests without a browser agent
        return {"User-Agent": self._user_agent}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/html/"

    def _get_endpoint_search(self) -> str:
        return "/html/"

    ################ PAYLOAD BUILDER ##################
    def get_search_params(self, query: str) -> dict:
        return {"q": query, "kl": self._region}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @staticmethod
    def _resolve_link(href: str | None) -> str | None:
        """Unwrap DuckDuckGo redirect links (//duckduckgo.com/l/?uddg=<target>)."""
        if not href:
            return None
        parsed = urlparse(href if "://" in href else f"https:{href}")
        target = parse_qs(parsed.query).get("uddg")
        return target[0] if target else href

    def extract_results(self, page: str, max_results: int) -> list[WebSearchResult]:
        soup = BeautifulSoup(page, "html.parser")
        results: list[WebSearchResult] = []
        for body in soup.select(".result__body"):
            if len(results) >= max_results:
                break
            title_el = body.select_one(".result__title")
            snippet_el = body.select_one(".result__snippet")
            title = title_el.get_text(" ", strip=True) if title_el else ""
            snippet = snippet_el.get_text(" ", strip=True) if snippet_el else ""
            if not title or not snippet:
                continue
            link = body.select_one("a.result__a")
            results.append(WebSearchResult(
                title=title,
                snippet=snippet,
                url=self._resolve_link(link.get("href") if link else None),
            ))
        return results
