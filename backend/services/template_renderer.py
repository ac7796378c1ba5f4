"""
Moteur de rendu des templates de notification.

Syntaxe :
  {{variable}}                 substitution
  {{#if variable}}...{{/if}}   inclusion conditionnelle

Deux passes, dans cet ordre :
  1. substitution : chaque {{nom}} dont la valeur est présente est remplacé ;
     un placeholder sans valeur reste tel quel dans le texte.
  2. conditions : chaque bloc {{#if nom}} est fermé par le PREMIER {{/if}}
     qui le suit. Pas d'imbrication.

Limite connue : RAW_HTML_INTERPOLATION. Les valeurs sont insérées sans
échappement HTML (items_list contient du HTML). Passer `escape=html.escape`
pour un rendu échappé.
"""
import re
from typing import Any, Callable, Mapping, Optional

OPEN = "{{"
CLOSE = "}}"
IF_OPEN = "{{#if"
IF_CLOSE = "{{/if}}"

_NAME_RE = re.compile(r"[A-Za-z0-9_]+")

RAW_HTML_INTERPOLATION = True


def render(
    template: str,
    data: Mapping[str, Any],
    escape: Optional[Callable[[str], str]] = None,
) -> str:
    """Rend `template` avec `data`. Ne lève jamais pour une donnée manquante."""
    if not template:
        return ""
    substituted = substitute_variables(template, data, escape=escape)
    return evaluate_conditionals(substituted, data)


def substitute_variables(
    template: str,
    data: Mapping[str, Any],
    escape: Optional[Callable[[str], str]] = None,
) -> str:
    out = []
    pos = 0
    while True:
        start = template.find(OPEN, pos)
        if start == -1:
            out.append(template[pos:])
            break
        end = template.find(CLOSE, start + len(OPEN))
        if end == -1:
            out.append(template[pos:])
            break

        name = template[start + len(OPEN):end]
        value = data.get(name) if _NAME_RE.fullmatch(name) else None
        if value is None:
            # Placeholder inconnu : on garde "{" et on reprend au caractère suivant
            out.append(template[pos:start + 1])
            pos = start + 1
            continue

        text = str(value)
        out.append(template[pos:start])
        out.append(escape(text) if escape else text)
        pos = end + len(CLOSE)
    return "".join(out)


def evaluate_conditionals(text: str, data: Mapping[str, Any]) -> str:
    out = []
    pos = 0
    while True:
        start = text.find(IF_OPEN, pos)
        if start == -1:
            out.append(text[pos:])
            break

        parsed = _parse_if_tag(text, start)
        if parsed is None:
            out.append(text[pos:start + 1])
            pos = start + 1
            continue
        name, body_start = parsed

        body_end = text.find(IF_CLOSE, body_start)
        if body_end == -1:
            # Aucun {{/if}} plus loin : plus aucun bloc possible
            out.append(text[pos:])
            break

        out.append(text[pos:start])
        if is_truthy(data.get(name)):
            out.append(text[body_start:body_end])
        pos = body_end + len(IF_CLOSE)
    return "".join(out)


def is_truthy(value: Any) -> bool:
    """None, "" et 0 sont faux ; toute autre valeur est vraie."""
    if value is None:
        return False
    return bool(value)


def _parse_if_tag(text: str, start: int):
    """Analyse `{{#if nom}}` à la position `start` → (nom, début du contenu)."""
    i = start + len(IF_OPEN)
    ws = i
    while i < len(text) and text[i].isspace():
        i += 1
    if i == ws:
        return None
    match = _NAME_RE.match(text, i)
    if not match:
        return None
    i = match.end()
    if not text.startswith(CLOSE, i):
        return None
    return match.group(0), i + len(CLOSE)
