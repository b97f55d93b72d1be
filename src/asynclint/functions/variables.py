"""URL・チャネルアドレスのテンプレート変数と宣言の突き合わせ。"""

import re
from typing import Any

from asynclint.models.diagnostic import REDUNDANT_VARIABLE, UNDEFINED_VARIABLE, JsonPath, Violation
from asynclint.models.rule import RuleContext

# 空の {} は対象外（no-empty-variable系のpatternルールが扱う）
_TEMPLATE_VARIABLE = re.compile(r"\{([^{}]+)\}")


def parse_template_variables(template: Any) -> list[str]:
    """テンプレート文字列中の {name} を出現順・重複なしで返す。"""
    if not isinstance(template, str):
        return []
    names: list[str] = []
    for name in _TEMPLATE_VARIABLE.findall(template):
        if name not in names:
            names.append(name)
    return names


def _reconcile(
    used: list[str],
    declared: Any,
    path: JsonPath,
    field: str,
    missing_message: str,
    redundant_message: str,
) -> list[Violation]:
    declared_names = list(declared) if isinstance(declared, dict) else []
    results = [
        Violation(
            message=missing_message.format(name=name),
            path=(*path, field),
            kind=UNDEFINED_VARIABLE,
        )
        for name in used
        if name not in declared_names
    ]
    results.extend(
        Violation(
            message=redundant_message.format(name=name),
            path=(*path, field, name),
            kind=REDUNDANT_VARIABLE,
        )
        for name in declared_names
        if name not in used
    )
    return results


def server_variables(target: Any, options: dict[str, Any], context: RuleContext) -> list[Violation]:
    """サーバーURLの変数とvariablesオブジェクトの整合性を検証する。

    URLで使われているのに宣言されていない変数と、宣言されているのにURLで
    使われていない変数を、それぞれ1件ずつ報告する。
    あわせて、enumを持つ変数のdefault/examplesがenumに含まれるかも検証する。
    """
    if not isinstance(target, dict):
        return []

    variables = target.get("variables")
    results = _reconcile(
        parse_template_variables(target.get("url")),
        variables,
        context.path,
        "variables",
        missing_message="Not all server's variables are described with \"variables\" object. Missed: {name}.",
        redundant_message="Server's \"variables\" object has redundant defined \"{name}\" url variable.",
    )

    if isinstance(variables, dict):
        for name, variable in variables.items():
            results.extend(_check_variable_enum(name, variable, (*context.path, "variables", name)))
    return results


def _check_variable_enum(name: str, variable: Any, path: JsonPath) -> list[Violation]:
    if not isinstance(variable, dict) or not isinstance(variable.get("enum"), list):
        return []
    allowed = variable["enum"]
    results: list[Violation] = []
    if "default" in variable and variable["default"] not in allowed:
        results.append(
            Violation(
                message=f'Server Variable "{name}" has a default value that is not listed in the "enum".',
                path=(*path, "default"),
            )
        )
    examples = variable.get("examples")
    if isinstance(examples, list):
        for index, example in enumerate(examples):
            if example not in allowed:
                results.append(
                    Violation(
                        message=f'Server Variable "{name}" has an example value that is not listed in the "enum".',
                        path=(*path, "examples", index),
                    )
                )
    return results


def channel_parameters(target: Any, options: dict[str, Any], context: RuleContext) -> list[Violation]:
    """チャネルアドレスのパラメータとparametersオブジェクトの整合性を検証する。

    マッチ位置の最後のセグメントをチャネルアドレスとして扱う。
    パラメータのschemaは任意で、schemaの有無に関係なく未使用の宣言は冗長とみなす。
    """
    if not isinstance(target, dict) or not context.path:
        return []

    address = str(context.path[-1])
    return _reconcile(
        parse_template_variables(address),
        target.get("parameters"),
        context.path,
        "parameters",
        missing_message="Not all channel's parameters are described with \"parameters\" object. Missed: {name}.",
        redundant_message="Channel's \"parameters\" object has redundant defined \"{name}\" parameter.",
    )
