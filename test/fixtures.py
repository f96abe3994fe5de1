"""
Synthetic Elm bundles and module instances for the tests.

`BUNDLE` follows the layout of `elm make --optimize` output, trimmed down to the
parts the rewriter cares about plus a little unrelated code around them.
"""

from types import SimpleNamespace
from typing import Any, Callable


EXPORTS = """{'Binding':{'init':$author$project$Binding$main(
	$elm$json$Json$Decode$int)(0)}}"""

BUNDLE = """\
(function(scope){
'use strict';

function F(arity, fun, wrapper) {
  wrapper.a = arity;
  wrapper.f = fun;
  return wrapper;
}

function F2(fun) {
  return F(2, fun, function(a) { return function(b) { return fun(a,b); }; })
}


// EXPORT ELM MODULES


function _Platform_export(exports)
{
	scope['Elm']
		? _Platform_mergeExportsProd(scope['Elm'], exports)
		: scope['Elm'] = exports;
}


function _Platform_mergeExportsProd(obj, exports)
{
	for (var name in exports)
	{
		(name in obj)
			? (name == 'init')
				? _Debug_crash(6)
				: _Platform_mergeExportsProd(obj[name], exports[name])
			: (obj[name] = exports[name]);
	}
}
var $author$project$Binding$double = function (n) {
	return n * 2;
};
var $author$project$Binding$main = $elm$core$Platform$worker(
	{init: $author$project$Binding$init, subscriptions: $author$project$Binding$none, update: F2(function (_v0, model) { return model; })});
_Platform_export(""" + EXPORTS + """);}(this));
"""


def make_bundle(
    *,
    header: str = '(function(scope){',
    directive: str = "'use strict';",
    exports: str = EXPORTS,
    closing: str = '}(this));',
    extra: str = '',
) -> str:
    """Create a variation of `BUNDLE` with some parts replaced."""
    bundle = BUNDLE.replace('(function(scope){', header, 1)
    bundle = bundle.replace("'use strict';", directive, 1)
    bundle = bundle.replace(EXPORTS, exports, 1)
    bundle = bundle.replace('}(this));', closing, 1)
    return bundle.replace('// EXPORT ELM MODULES\n', f'// EXPORT ELM MODULES\n{extra}', 1)


# ======================================================================================


class Port:
    """A stand-in for an outgoing Elm port."""

    def __init__(self, on_subscribe: 'None | Callable[[Port], None]' = None) -> None:
        self.listeners: 'list[Callable[[Any], None]]' = []
        self.unsubscribed = 0
        self.on_subscribe = on_subscribe

    def subscribe(self, listener: 'Callable[[Any], None]') -> None:
        self.listeners.append(listener)
        if self.on_subscribe is not None:
            self.on_subscribe(self)

    def unsubscribe(self, listener: 'Callable[[Any], None]') -> None:
        self.listeners.remove(listener)
        self.unsubscribed += 1

    def send(self, value: object) -> None:
        for listener in list(self.listeners):
            listener(value)


def make_module(
    port: Port,
    compute: 'None | Callable[[object], object]' = None,
) -> SimpleNamespace:
    """
    Create a module exposing `Elm.Binding.init()`. If `compute` is given, the
    port sends `compute(flags)` as soon as it has a subscriber.
    """
    flags_seen: 'list[object]' = []

    def init(config: 'dict[str, object]') -> SimpleNamespace:
        flags = config['flags']
        flags_seen.append(flags)
        if compute is not None:
            port.on_subscribe = lambda p: p.send(compute(flags))
        return SimpleNamespace(ports=SimpleNamespace(out=port))

    binding = SimpleNamespace(init=init)
    return SimpleNamespace(Elm=SimpleNamespace(Binding=binding), flags_seen=flags_seen)


# ======================================================================================


MINIMAL_BUNDLE = """\
(function(scope){
'use strict';

function _Platform_export(exports)
{
	scope['Elm'] = exports;
}

function _Platform_mergeExportsProd(obj, exports)
{
	for (var name in exports)
	{
		obj[name] = exports[name];
	}
}
var ns = {Foo:{init:1}};
_Platform_export({'Foo':{'init':ns.Foo.init}});}(this));
"""

MINIMAL_MODULE = """\
// -- (function(scope){
// -- 'use strict';

/*
function _Platform_export(exports)
{
	scope['Elm'] = exports;
}

*/
/*
function _Platform_mergeExportsProd(obj, exports)
{
	for (var name in exports)
	{
		obj[name] = exports[name];
	}
}
*/
var ns = {Foo:{init:1}};
/*
_Platform_export({'Foo':{'init':ns.Foo.init}});}(this));
*/

export const Elm = {'Foo':{'init':ns.Foo.init}};
"""


# A bundle that Node.js can actually run. Its "out" port sends twice the flags
# on the next tick, unless EMIT is replaced with something else.
EMIT = """setTimeout(function () {
		listeners.slice().forEach(function (listener) { listener(config.flags * 2); });
	}, 0);"""

RUNNABLE_BUNDLE = """\
(function(scope){
'use strict';

function _Platform_export(exports)
{
	scope['Elm'] = exports;
}

function _Platform_mergeExportsProd(obj, exports)
{
	for (var name in exports)
	{
		obj[name] = exports[name];
	}
}
function $author$project$Binding$init(config)
{
	var listeners = [];
	var out = {
		subscribe: function (listener) { listeners.push(listener); },
		unsubscribe: function (listener) { listeners.splice(listeners.indexOf(listener), 1); }
	};
	""" + EMIT + """
	return {ports: {out: out}};
}
_Platform_export({'Binding':{'init':$author$project$Binding$init}});}(this));
"""
