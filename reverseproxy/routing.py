import logging

from starlette.datastructures import URL

from . import config
from .rule import ProxyRequest, Rule

logger = logging.getLogger(__name__)

# First matching rule wins


def find_route(request: ProxyRequest,
               rules: list[Rule] | None = None) -> tuple[Rule | None, URL | None]:
    if rules is None:
        rules = config.settings.rules
    for rule in rules:
        if rule.matches_request(request):
            destination = rule.destination_url(request)
            logger.debug('Routing %s%s -> %s', request.host, request.path, destination)
            return rule, destination
    logger.debug('No rule for %s%s', request.host, request.path)
    return None, None
