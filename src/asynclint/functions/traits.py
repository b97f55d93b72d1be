"""オペレーション・メッセージへのトレイト適用。"""

from typing import Any


def merge_patch(origin: Any, patch: Any) -> Any:
    """JSON Merge Patch (RFC 7386) を適用した新しい値を返す。originは変更しない。"""
    if not isinstance(patch, dict):
        return patch
    result = dict(origin) if isinstance(origin, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = merge_patch(result.get(key), value)
    return result


def merge_traits(value: Any) -> Any:
    """traitsを宣言順にマージしたコピーを返す。traitsが無ければそのまま返す。

    同じキーはトレイト側の値で上書きされる。
    """
    if not isinstance(value, dict) or not isinstance(value.get("traits"), list):
        return value
    merged = dict(value)
    for trait in value["traits"]:
        if not isinstance(trait, dict):
            continue
        for key, patch in trait.items():
            merged[key] = merge_patch(merged.get(key), patch)
    return merged
