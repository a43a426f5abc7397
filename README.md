# redirex

`redirex` is a small toolkit for deciding where an incoming HTTP request
should be sent, based on rules about its headers. It contains:

- `redirex.receptor`: the public-facing HTTP server, run as `redirex-receptor`;
- `redirex.rules`: rules that check a request and end in a redirect;
- `redirex.endpoint`: HTTP and JSON endpoints that rules answer through;
- `redirex.ioc`, `redirex.scope`, `redirex.scope_commands`: a scoped IoC container;
- `redirex.commands`: the command building blocks the rest is made of.

## The receptor server

```
redirex-receptor
```

The receptor listens on port 8080 on all interfaces. It serves one connection
at a time and keeps a connection open while the client asks it to. It answers:

- `/`: a welcome page;
- `/shutdown`: a page saying the application has stopped. The server stops
  accepting connections once the current one ends;
- any other path: the target and the request headers are packed into a JSON
  object, for example `{"target":"/a","Host":"example.com","User-Agent":"..."}`,
  and posted to a redirector service at `127.0.0.1:18081` by `HttpRedirector`.
  - `{"redirect": "<url>"}` back: `307 Temporary Redirect` with `Location: <url>`;
  - `{"error": ...}` back: a `200` page saying that no rule matched;
  - no answer, or an empty one: `500 Internal server error`;
  - any other answer: a `200` with an empty body.

Ctrl+C also stops the server once the current connection ends.

`ReceptorServer.handle_request(target, headers, keep_alive)` builds the
`Response` for one request without any networking, so it can be used and
tested on its own. The dependencies it needs come from an `IoC` container that
`create_environment(ioc)` fills in: `Server.Shutdown.Get`,
`Server.Shutdown.Set`, `ServerProcessCommand` and `Redirector.Get`. Register a
different `Redirector.Get` to answer redirect questions some other way. Any
`Redirector` subclass with a `request(body) -> str` method will do.

## Rules

Every rule has `examine(request)`. It takes a decoded JSON request (a `dict`)
and raises `RuleError` when the request does not pass. When it passes, the
rule hands the request to its `next_rule`. A chain ends in a `RuleRedirect`,
which calls `write_done(target)` on its endpoint.

| class        | passes when                                                          |
|--------------|----------------------------------------------------------------------|
| `RuleContain`| the field exists, is a string and contains `condition`               |
| `RuleEqual`  | the field exists, is a string and equals `condition`                 |
| `RuleGTDate` | today's year is not before the year of `condition` (`dd.mm.yyyy`) and today's day of the year is not before its day of the year |

```python
from redirex.rules import RuleContain, RuleRedirect, RuleError

class Collect:
    def __init__(self):
        self.sent = []

    def write_done(self, data):
        self.sent.append(data)

endpoint = Collect()
chain = RuleContain(
    "User-Agent", "Firefox",
    RuleContain("Accept-Language", "ru-RU",
                RuleRedirect("https://example.com/ru/firefox", endpoint)),
)
chain.examine({"User-Agent": "Mozilla/5.0 Firefox/125.0", "Accept-Language": "ru-RU"})
endpoint.sent   # ["https://example.com/ru/firefox"]

try:
    chain.examine({"User-Agent": "Chrome"})
except RuleError as error:
    print(error)
```

`contain_plugin`, `equal_plugin` and `gtdate_plugin` take
`(rule, field, condition, next_rule)`. Each one builds its rule when `rule` is
`"Contain"`, `"Equal"` or `"GTDate"` respectively, and returns `None` for any
other type.

## Endpoints

`HttpEndPoint(rfile, wfile)` reads HTTP/1.1 requests from a binary stream and
returns their bodies. Bodies can be sized by `Content-Length` or sent chunked.
At the end of the stream it raises `EndPointError`. `write_done` sends a `200`
JSON response and `write_error` sends a `406`.

`JsonEndPoint(endpoint)` wraps another endpoint:

- `read()` returns the body only if it is valid JSON and an empty string
  otherwise;
- `write_done(url)` sends `{"redirect":"<url>"}`;
- `write_error(text)` sends `{"error":"<text>"}`.

Those are the answers the receptor understands.

## The IoC container

Dependencies are registered and resolved by name. Scopes form a tree, and each
thread has its own current scope, which starts at the root:

```python
from redirex.ioc import resolve

resolve("IoC.Scope.Current.Set", "/").execute()
resolve("IoC.Register", "Greeting", lambda: "hello from root").execute()

resolve("IoC.Scope.New", "child").execute()
resolve("IoC.Scope.Current.Set", "child").execute()

resolve("Greeting")   # "hello from root": child scopes inherit from parents
```

`IoC.Scope.Current.Set` accepts either the name of a direct child of the
current scope or an absolute path such as `/child/grandchild`. Registering the
same name twice in one scope raises `CommandError`. Resolving a name with no
resolver raises `ResolutionError`.

The module-level `resolve` uses one process-wide container. `IoC()` creates an
independent one.

## Commands

`redirex.commands` provides:

- `Command`: the base class;
- `MacroCommand`: runs commands in order and stops at the first failure,
  raising `CommandError`;
- `FallbackCommand`: tries commands until one succeeds and raises
  `CommandError` if none does;
- `CommandQueue`: runs one command per `next()`. Failures go to an
  `ExceptionManager` if there is one and are raised otherwise;
- `ExceptionManager`: routes a failed command to a `Handler` registered for
  the pair of command type and error type.

## What is not included

This package does not contain the redirector service that the receptor posts
to at `127.0.0.1:18081`. It also has nothing that reads rule sequences from
JSON, builds rule chains from them automatically, or finds rule types at run
time. You must supply a service on that address, or register your own
`Redirector.Get`, for the receptor to give anything but a `500` for paths
other than `/` and `/shutdown`. Rule chains are built by hand, as shown above.

## Development

```
pip install -e ".[test]"
pytest
```