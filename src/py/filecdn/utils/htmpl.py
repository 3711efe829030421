from typing import (
    Callable,
    Iterable,
    Iterator,
    LiteralString,
    Optional,
    Union,
    cast,
)
from mypy_extensions import KwArg, VarArg

# --
# A small HTML templating layer, where documents are trees of `Node` built
# with the tag factories of `H`:
#
# >    html(H.ul(H.li("one"), H.li("two", _="last")), doctype="html")
#
# Text content and attribute values are always escaped.

HTML_VOID: frozenset[str] = frozenset(
    "area base br col embed hr img input link meta source track wbr".split()
)
HTML_ESCAPED = str.maketrans(
    {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#x27;"}
)
HTML_QUOTED = str.maketrans({"&": "&amp;", '"': "&quot;", "<": "&lt;"})


def escape(text: str) -> str:
    return text.translate(HTML_ESCAPED)


def quoted(text: Optional[str]) -> str:
    return text.translate(HTML_QUOTED) if text else ""


TNodeContent = Union["Node", str, bool, float, int, None]
TAttributeContent = str | bool | float | int | None


class Node:
    __slots__ = ["name", "attributes", "children"]

    def __init__(
        self,
        name: str,
        children: Optional[Iterable[TNodeContent]] = None,
        attributes: Optional[dict[str, TAttributeContent]] = None,
    ):
        self.name = name
        self.attributes: dict[str, TAttributeContent] = attributes or {}
        self.children: list[TNodeContent] = list(children) if children else []

    def iterHTML(self) -> Iterator[str]:
        if self.name == "#text":
            yield escape(str(self.attributes.get("#value") or ""))
            return
        yield f"<{self.name}"
        for k, v in self.attributes.items():
            if v is True:
                yield f" {k}"
            elif v is not None and v is not False:
                yield f' {k}="{quoted(str(v))}"'
        yield ">"
        if self.name in HTML_VOID:
            return
        for _ in self.children:
            if isinstance(_, Node):
                yield from _.iterHTML()
            elif _ is not None:
                yield escape(str(_))
        yield f"</{self.name}>"

    def __call__(self, *content: Union[str, "Node"]) -> "Node":
        for _ in content:
            self.children.append(text(_) if isinstance(_, str) else _)
        return self

    def __str__(self) -> str:
        return "".join(self.iterHTML())


def text(value: str) -> Node:
    return Node("#text", attributes={"#value": value})


def node(
    name: str,
    children: Optional[Iterable[TNodeContent]] = None,
    attributes: Optional[dict[str, TAttributeContent]] = None,
) -> Node:
    return Node(
        name,
        children=[text(_) if isinstance(_, str) else _ for _ in children or ()],
        attributes=attributes,
    )


NodeFactory = Callable[
    [
        VarArg(TNodeContent | Iterable[TNodeContent]),
        KwArg(TAttributeContent),
    ],
    Node,
]


def nodeFactory(name: str) -> NodeFactory:
    """Returns a function creating `name` nodes, where positional arguments
    are children (lists and tuples being flattened) and keyword arguments
    are attributes, `_` standing for `class`."""

    def f(*children: TNodeContent | Iterable[TNodeContent], **attributes: TAttributeContent) -> Node:
        content: list[TNodeContent] = []
        for _ in children:
            if isinstance(_, (list, tuple)):
                content += _
            else:
                content.append(cast(TNodeContent, _))
        attrs: dict[str, TAttributeContent] = {
            ("class" if k == "_" else k.rstrip("_").replace("_", "-")): v
            for k, v in attributes.items()
        }
        return node(name, content, attrs)

    f.__name__ = name
    return cast(NodeFactory, f)


HTML_TAGS: list[LiteralString] = (
    """\
a body code div footer h1 h2 head header html li link main meta p section
small span style title ul\
""".split()
)


class Markup:
    __slots__ = ["_factories", "_name"]

    def __init__(self, name: str, factories: dict[str, NodeFactory]):
        self._name: str = name
        self._factories: dict[str, NodeFactory] = factories

    def __getattribute__(self, name: str) -> NodeFactory:
        if name.startswith("_"):
            return cast(NodeFactory, super().__getattribute__(name))
        factories = self._factories
        if name not in factories:
            raise AttributeError(
                f"No tag {name}, pick one of {','.join(factories.keys())}"
            )
        return factories[name]


def markup(name: str, tags: Iterable[str]) -> Markup:
    return Markup(name, {_: nodeFactory(_) for _ in tags})


H: Markup = markup("html", HTML_TAGS)


def html(*nodes: Node, doctype: str | None = None) -> Iterator[str]:
    """Iterates on the HTML text of the given nodes, preceded by the
    doctype declaration when given."""
    if doctype:
        yield f"<!DOCTYPE {doctype}>\n"
    for _ in nodes:
        yield from _.iterHTML()


# EOF
