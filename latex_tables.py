from types import MappingProxyType

UNICODE_TO_LATEX = MappingProxyType({
    # Greek
    "α": r"\alpha", "β": r"\beta", "γ": r"\gamma", "δ": r"\delta",
    "ε": r"\epsilon", "ζ": r"\zeta", "η": r"\eta", "θ": r"\theta",
    "ι": r"\iota", "κ": r"\kappa", "λ": r"\lambda", "μ": r"\mu",
    "ν": r"\nu", "ξ": r"\xi", "π": r"\pi", "ρ": r"\rho",
    "σ": r"\sigma", "τ": r"\tau", "υ": r"\upsilon", "φ": r"\phi",
    "χ": r"\chi", "ψ": r"\psi", "ω": r"\omega",
    "Γ": r"\Gamma", "Δ": r"\Delta", "Θ": r"\Theta", "Λ": r"\Lambda",
    "Ξ": r"\Xi", "Π": r"\Pi", "Σ": r"\Sigma", "Υ": r"\Upsilon",
    "Φ": r"\Phi", "Ψ": r"\Psi", "Ω": r"\Omega",
    # operators / relations
    "×": r"\times", "÷": r"\div", "±": r"\pm", "∓": r"\mp",
    "·": r"\cdot", "°": r"^\circ", "∞": r"\infty", "≈": r"\approx",
    "≠": r"\neq", "≤": r"\leq", "≥": r"\geq", "≪": r"\ll",
    "≫": r"\gg", "∝": r"\propto", "≡": r"\equiv", "∼": r"\sim",
    "≃": r"\simeq", "≅": r"\cong",
    # sets / quantifiers
    "∈": r"\in", "∉": r"\notin", "⊂": r"\subset", "⊃": r"\supset",
    "⊆": r"\subseteq", "⊇": r"\supseteq", "∪": r"\cup", "∩": r"\cap",
    "∅": r"\emptyset", "∀": r"\forall", "∃": r"\exists", "∄": r"\nexists",
    # arrows
    "→": r"\rightarrow", "←": r"\leftarrow", "↔": r"\leftrightarrow",
    "⇒": r"\Rightarrow", "⇐": r"\Leftarrow", "⇔": r"\Leftrightarrow",
    "↑": r"\uparrow", "↓": r"\downarrow", "↦": r"\mapsto",
    # calculus
    "∂": r"\partial", "∇": r"\nabla", "∫": r"\int", "∬": r"\iint",
    "∭": r"\iiint", "∮": r"\oint", "∑": r"\sum", "∏": r"\prod",
    "√": r"\sqrt",
    # logic
    "∧": r"\land", "∨": r"\lor", "¬": r"\neg", "⊕": r"\oplus",
    "⊗": r"\otimes", "⊥": r"\perp", "∥": r"\parallel",
    # number sets, misc
    "ℕ": r"\mathbb{N}", "ℤ": r"\mathbb{Z}", "ℚ": r"\mathbb{Q}",
    "ℝ": r"\mathbb{R}", "ℂ": r"\mathbb{C}", "ℏ": r"\hbar", "ℓ": r"\ell",
    "′": "'", "″": "''",
})

FUNCTION_NAMES = MappingProxyType({
    name: "\\" + name
    for name in (
        "sin", "cos", "tan", "cot", "sec", "csc",
        "arcsin", "arccos", "arctan", "sinh", "cosh", "tanh",
        "log", "ln", "exp", "lim", "max", "min", "sup", "inf",
        "det", "dim", "ker", "gcd", "mod", "arg", "deg",
    )
})

ACCENTS = MappingProxyType({
    # combining marks
    "̂": r"\hat", "̃": r"\tilde", "̄": r"\bar", "⃗": r"\vec",
    "̇": r"\dot", "̈": r"\ddot", "̆": r"\breve", "̌": r"\check",
    # spacing spellings
    "ˆ": r"\hat", "˜": r"\tilde", "¯": r"\bar", "→": r"\vec",
})
DEFAULT_ACCENT = r"\hat"

DELIMITERS = MappingProxyType({
    "(": "(", ")": ")", "[": "[", "]": "]",
    "{": r"\{", "}": r"\}", "|": "|", "‖": r"\|",
    "⌈": r"\lceil", "⌉": r"\rceil", "⌊": r"\lfloor", "⌋": r"\rfloor",
    "⟨": r"\langle", "⟩": r"\rangle",
    "": ".",
})

NARY_OPERATORS = MappingProxyType({
    "∫": r"\int", "∬": r"\iint", "∭": r"\iiint", "∮": r"\oint",
    "∑": r"\sum", "∏": r"\prod", "⋃": r"\bigcup", "⋂": r"\bigcap",
    "⋁": r"\bigvee", "⋀": r"\bigwedge",
})
DEFAULT_NARY = r"\int"

UNDERBRACE_CHARS = ("⏟", "︸")
OVERBRACE_CHARS = ("⏞", "︷")
