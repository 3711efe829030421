from ..decorators import on
from ..http.model import HTTPRequest, HTTPResponse
from ..utils.files import Category, formatSize
from ..utils.htmpl import H, Node, html
from ..utils.listing import DirectoryLister, FileEntry
from ..utils.logging import info
from ..model import Service

ICONS: dict[str, str] = {
	Category.Video.value: "\U0001f3a5",
	Category.Audio.value: "\U0001f3b5",
	Category.Image.value: "\U0001f5bc\ufe0f",
	Category.Document.value: "\U0001f4c4",
	Category.Archive.value: "\U0001f4e6",
	Category.Web.value: "\U0001f4dd",
	Category.File.value: "\U0001f4ce",
}

STYLE: str = """\
body{font-family:system-ui,sans-serif;max-width:60rem;margin:2rem auto;padding:0 1rem;color:#222}
ul{list-style:none;padding:0}
li{display:flex;gap:.75rem;padding:.4rem 0;border-bottom:1px solid #eee}
li a{flex:1}
small{color:#777}
"""


class IndexService(Service):
	"""Serves an HTML page listing every file under the root. The page is
	rendered once when the service starts, so files added later only show
	up after a restart."""

	def __init__(
		self, lister: DirectoryLister, *, title: str = "Files", name: str | None = None
	):
		super().__init__(name)
		self.lister: DirectoryLister = lister
		self.title: str = title
		self.page: str | None = None

	async def start(self) -> None:
		self.page = self.render()
		info("Rendered index page", Root=str(self.lister.resolver.root))

	def entry(self, entry: FileEntry) -> Node:
		return H.li(
			H.span(ICONS.get(entry.category or "", ICONS[Category.File.value])),
			H.a(entry.path, href=entry.url),
			H.small(formatSize(entry.size or 0)),
			_=entry.category,
		)

	def render(self) -> str:
		entries: list[FileEntry] = list(self.lister.walk())
		return "".join(
			html(
				H.html(
					H.head(
						H.meta(charset="utf-8"),
						H.title(self.title),
						H.style(STYLE),
					),
					H.body(
						H.h1(self.title),
						H.ul([self.entry(_) for _ in entries])
						if entries
						else H.p("No files yet", _="empty"),
					),
					lang="en",
				),
				doctype="html",
			)
		)

	@on(GET_HEAD="/")
	def index(self, request: HTTPRequest) -> HTTPResponse:
		if self.page is None:
			self.page = self.render()
		return request.respondHTML(self.page)


# EOF
