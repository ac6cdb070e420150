"""willhaben-cli — browse willhaben.at classifieds from the terminal."""

__version__ = "0.4.0"
__description__ = "Search, browse and star willhaben.at listings in your terminal."

from willhaben_cli.config import load_config, Config, UserConfig
from willhaben_cli.parser import parse_search_result, parse_listing_detail

__all__ = ["load_config", "Config", "UserConfig", "parse_search_result", "parse_listing_detail"]
