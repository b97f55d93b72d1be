"""asynclintのカスタム例外クラス。"""


class AsyncLintError(Exception):
    """asynclintの基底例外クラス。"""


class ConfigurationError(AsyncLintError):
    """ルールセット構築時の設定エラー。起動失敗として扱う。"""


class SelectorSyntaxError(ConfigurationError):
    """セレクタ文字列が不正な場合の例外。"""

    def __init__(self, selector: str, position: int, reason: str) -> None:
        super().__init__(f"Invalid selector {selector!r} at position {position}: {reason}")
        self.selector = selector
        self.position = position
        self.reason = reason


class DuplicateRuleError(ConfigurationError):
    """ルールIDが重複している場合の例外。"""

    def __init__(self, rule_id: str, ruleset: str | None = None) -> None:
        where = f" in ruleset: {ruleset}" if ruleset else " across rulesets"
        super().__init__(f"Duplicate rule id{where}: {rule_id}")
        self.rule_id = rule_id
        self.ruleset = ruleset


class UnknownFunctionError(ConfigurationError):
    """ルールが未知のバリデータ関数を参照している場合の例外。"""

    def __init__(self, function_name: str, rule_id: str) -> None:
        super().__init__(f"Unknown function {function_name!r} referenced by rule: {rule_id}")
        self.function_name = function_name
        self.rule_id = rule_id


class RulesetNotFoundError(ConfigurationError):
    """指定されたルールセットが登録されていない場合の例外。"""

    def __init__(self, name: str) -> None:
        super().__init__(f"Ruleset not found: {name}")
        self.name = name


class DocumentParseError(AsyncLintError):
    """AsyncAPIドキュメントの読み込みに失敗した場合の例外。"""

    def __init__(self, message: str, source: str | None = None) -> None:
        prefix = f"{source}: " if source else ""
        super().__init__(f"{prefix}{message}")
        self.source = source


class RuleExecutionError(AsyncLintError):
    """ルール実行中に予期しない例外が発生した場合の例外。

    バリデータ関数や外部コラボレータ（スキーマ検証など）の障害を表す。
    実行全体が中断され、途中までの診断結果は破棄される。
    """

    def __init__(self, rule_id: str, cause: BaseException) -> None:
        super().__init__(f"Rule {rule_id} failed: {type(cause).__name__}: {cause}")
        self.rule_id = rule_id
        self.cause = cause
