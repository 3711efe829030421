from .config import CDNConfig
from .model import Application, Service, mount
from .services.api import MetadataService
from .services.files import FileService
from .services.index import IndexService
from .utils.files import TypeClassifier
from .utils.listing import DirectoryLister
from .utils.paths import PathResolver


def services(config: CDNConfig = CDNConfig()) -> list[Service]:
	"""Creates the services of the CDN, sharing one resolver confined to
	the configured root."""
	resolver = PathResolver(config.root)
	classifier = TypeClassifier()
	lister = DirectoryLister(
		resolver, classifier, baseURL=config.publicURL, depth=config.depth
	)
	return [
		FileService(resolver, classifier),
		MetadataService(lister),
		IndexService(lister),
	]


def application(config: CDNConfig = CDNConfig()) -> Application:
	return mount(*services(config))


# EOF
