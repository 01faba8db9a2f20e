from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache

from studio_genai.assembly.render import Block, image_to_data_url, render_layout_preview

SOFT = (255, 255, 255, 200)
FAINT = (255, 255, 255, 56)
MID = (255, 255, 255, 166)
INK = (15, 23, 42, 100)


@dataclass(frozen=True)
class ThumbnailTemplate:
    id: int
    name: str
    structure: str
    suitable_for: str
    prompt_focus: str


@dataclass(frozen=True)
class LayoutTemplate:
    """Slide or manga layout. The preview wireframe is used as a layout reference image."""

    id: str
    name: str
    structure: str
    use_case: str
    accent: str
    secondary: str
    blocks: tuple[Block, ...] = field(default=())
    label: str = ""
    size: tuple[int, int] = (960, 540)
    description: str = ""

    @property
    def reference_image(self) -> str:
        return _preview(self)


@lru_cache(maxsize=32)
def _preview(tpl: LayoutTemplate) -> str:
    img = render_layout_preview(tpl.accent, tpl.secondary, list(tpl.blocks), tpl.label, tpl.size)
    return image_to_data_url(img)


THUMBNAIL_TEMPLATES: tuple[ThumbnailTemplate, ...] = (
    ThumbnailTemplate(1, "ワンワード強調テキスト型", "画面中央にインパクトのある一語を巨大配置。上下左右に小さめの説明テキスト。人物は小さく端に。", "情報系・時事ネタ・強い感情表現", "Huge single word text in center, high contrast, minimal subtext, small person in corner"),
    ThumbnailTemplate(2, "フルテキスト説明型", "2〜4行の太字テキストで画面を埋める。キーワードのみ極大化。背景は単色かグラデーション。", "ノウハウ系・顔出しなしの情報発信", "Full screen bold typography, gradient background, no human subject required, heavy text weight"),
    ThumbnailTemplate(3, "数字付き「◯選」・箇条書きリスト型", "タイトル＋数字バッジ。箇条書きリストやチェックボックスを配置。", "Tipsまとめ・チェックリスト系", "List layout, numbered badges, checklist icons, clean organization"),
    ThumbnailTemplate(4, "左右比較2択型（VS型）", "左右で背景色を分割。中央にVSテキスト。対比構造。", "比較検討・意思決定コンテンツ", "Split screen composition, two distinct background colors, VS text in center, contrasting elements"),
    ThumbnailTemplate(5, "複数比較テーブル型（3〜4択型）", "3〜4列のボックス横並び。下段に質問テキスト。", "サービス・商品・投資対象比較", "Comparison table layout, 3-4 columns, grid structure, clear separation"),
    ThumbnailTemplate(6, "Before / After 型", "左にBefore、右にAfter、中央に矢印。変化を強調。", "ビフォーアフター事例・変身企画", "Split screen, arrow in center pointing right, dull left side vs bright right side"),
    ThumbnailTemplate(7, "成長ストーリー（0→100）型", "左から右に伸びる巨大な矢印やグラフ。大きな数字。", "実績報告・ノウハウ共有", "Upward trending graph, large arrow overlay, growth visualization, dynamic angle"),
    ThumbnailTemplate(8, "シーン・ステップ時系列型", "枠を4つ程度並べてプロセスを表現（STEP1→2→3→4）。", "プロセス解説・ロードマップ", "Sequential layout, 4 panels or steps, chronological flow visual cues"),
    ThumbnailTemplate(9, "大数字カウンター型", "画面の30〜50％を占める巨大な数字。周囲に短い説明。", "数字インパクト重視・ランキング", "Massive number typography, dominant center element, eye-catching digits"),
    ThumbnailTemplate(10, "人物中央＋テキスト囲み型", "中央に人物シルエット/写真。上下または左右にタイトル。", "経験談・Vlog・インフルエンサー", "Central portrait composition, text framing the subject, clean background"),
    ThumbnailTemplate(11, "人物左＋右テキスト縦長型", "左に人物（バストアップ）。右側に縦書き/縦長のキーワード。", "専門性・権威性出し", "Subject on left, vertical typography on right, professional look"),
    ThumbnailTemplate(12, "人物右＋左テキスト縦長型（ミラー型）", "人物は右、テキストは左（No.11の反転）。", "専門性・権威性出し（バランス調整用）", "Subject on right, vertical typography on left, professional look"),
    ThumbnailTemplate(13, "複数人物＋属性ラベル型", "3〜4人の人物を横並び。下に属性ラベル。", "ターゲット別解説・自分ごと化", "Multiple subjects aligned horizontally, labels underneath each, diverse characters"),
    ThumbnailTemplate(14, "対談・インタビュー型", "左右に人物2人を配置。中央に「対談」ラベル。", "ゲスト回・特別企画", "Two subjects facing each other, interview setting, split focus"),
    ThumbnailTemplate(15, "サービス・デバイスロゴ強調型", "ロゴやデバイスアイコンを大きく配置。周囲にテキスト。", "ツール攻略・設定解説", "Central logo or device icon, tech focused, modern sleek background"),
    ThumbnailTemplate(16, "ランキング円形エンブレム型", "中央に円形バッジ（TOP10等）。周囲にキーワードを散らす。", "ランキング・ベスト選", "Central circular emblem/badge, scattered keywords background, medal style"),
    ThumbnailTemplate(17, "書籍・マンガ・名著リスト型", "本やマンガの書影枠を3〜5冊並べる。", "書評・教材紹介", "Bookshelf or floating book covers layout, 3-5 items, academic or comic style"),
    ThumbnailTemplate(18, "SNS / アカウント紹介・実績型", "SNS画面風UIやロゴを表示。実績数字を添える。", "運用ノウハウ・実績公開", "Social media UI mockups, analytics dashboard elements, smartphone frame"),
    ThumbnailTemplate(19, "イベント / セミナー / ライブ告知型", "上部にタイトル、下部に日時・場所詳細。ポスター風レイアウト。", "告知・LP的動画", "Event poster layout, clear header and footer sections, informational hierarchy"),
    ThumbnailTemplate(20, "ノウハウ講義・講座タイトル型", "講座名を大きく配置。英語サブタイトルなどの装飾。", "有料級講義・シリーズもの", "Academic or premium course title card, elegant typography, university vibe"),
    ThumbnailTemplate(21, "アイデアカードグリッド・マトリクス型", "小さなカードやボックスを格子状に配置。見出しを入れる。", "ネタ出し・企画まとめ", "Grid layout, sticky notes or card elements, brainstorming aesthetic"),
)

SLIDE_TEMPLATES: tuple[LayoutTemplate, ...] = (
    LayoutTemplate(
        id="intro",
        name="イントロ / タイトルスライド",
        structure="左上にタイトルとサブタイトル、右側に背景イメージやキービジュアルを大きく配置するオープニング構成。",
        use_case="セミナー名やテーマを最初に印象付ける導入スライド",
        accent="#3181FC",
        secondary="#7C3AED",
        blocks=(Block(54, 110, 360, 160, SOFT), Block(54, 290, 360, 80, MID), Block(450, 100, 430, 320, FAINT, 32)),
        label="INTRO",
    ),
    LayoutTemplate(
        id="single-visual",
        name="1ビジュアル + 説明",
        structure="左に大きな画像、右に見出しと3〜4行の説明を縦積みで配置するシンプル構成。",
        use_case="キービジュアルを見せつつ要点を短く伝えるページ",
        accent="#0EA5E9",
        secondary="#06B6D4",
        blocks=(
            Block(60, 110, 420, 300, FAINT, 26),
            Block(520, 120, 330, 90, SOFT),
            Block(520, 230, 330, 70, SOFT),
            Block(520, 320, 330, 70, SOFT),
        ),
        label="VISUAL + TEXT",
    ),
    LayoutTemplate(
        id="quad-grid",
        name="4面ギャラリー",
        structure="2x2 グリッドで4枚の画像を均等に配置し、短いキャプションを添える構成。",
        use_case="事例や比較画像をまとめて見せたいとき",
        accent="#F97316",
        secondary="#FBBF24",
        blocks=(
            Block(70, 120, 300, 180, FAINT),
            Block(370, 120, 300, 180, FAINT),
            Block(70, 310, 300, 180, FAINT),
            Block(370, 310, 300, 180, FAINT),
            Block(700, 150, 200, 110, MID),
            Block(700, 280, 200, 110, MID),
        ),
        label="4-UP GRID",
    ),
    LayoutTemplate(
        id="text-emphasis",
        name="文字強調 / フルテキスト",
        structure="画面の大部分を大きなテキストで埋め、下部に短い補足やCTAを配置する強調型。",
        use_case="キーメッセージを一気に伝えたいときの強調スライド",
        accent="#111827",
        secondary="#334155",
        blocks=(Block(70, 120, 640, 200, SOFT), Block(70, 340, 420, 90, MID), Block(520, 340, 190, 90, INK)),
        label="TEXT HEAVY",
    ),
    LayoutTemplate(
        id="timeline",
        name="ステップ / 時系列",
        structure="左から右へ3〜4ステップを並べ、矢印や番号で進行を示すタイムライン構成。",
        use_case="プロセスやロードマップ、導入手順の説明",
        accent="#22C55E",
        secondary="#4ADE80",
        blocks=(
            Block(80, 220, 180, 120, SOFT),
            Block(280, 220, 180, 120, SOFT),
            Block(480, 220, 180, 120, SOFT),
            Block(680, 220, 180, 120, SOFT),
            Block(140, 200, 620, 12, INK, 6),
        ),
        label="TIMELINE",
    ),
)

_MANGA_SIZE = (768, 1024)

MANGA_TEMPLATES: tuple[LayoutTemplate, ...] = (
    LayoutTemplate(
        id="hero-single",
        name="1コマ主人公強調",
        description="画面を1枚で使い、主人公の感情を大きく抜き出すインパクト型。セリフは1つに絞る。",
        structure="Full-bleed single panel, oversized protagonist close-up, dramatic lighting, one speech bubble near face.",
        use_case="導入やクライマックスで強烈な感情を見せたいとき",
        accent="#7C3AED",
        secondary="#F97316",
        blocks=(Block(70, 120, 628, 780, SOFT, 36), Block(420, 180, 180, 120, MID)),
        label="HERO",
        size=_MANGA_SIZE,
    ),
    LayoutTemplate(
        id="duo-contrast",
        name="2コマ対比",
        description="左右2分割でビフォーアフターや葛藤を描く。中央に対比を示す要素を置く。",
        structure="Split panel, left and right halves, contrasting lighting/colors, speech bubbles on each side, small label at center seam.",
        use_case="挫折と成功、過去と現在を並べて感情の落差を作るとき",
        accent="#0EA5E9",
        secondary="#06B6D4",
        blocks=(Block(60, 120, 300, 780, (255, 255, 255, 76), 28), Block(360, 120, 300, 780, (255, 255, 255, 46), 28), Block(320, 480, 120, 70, (15, 23, 42, 20), 18)),
        label="DUO",
        size=_MANGA_SIZE,
    ),
    LayoutTemplate(
        id="quad-progress",
        name="4コマ展開",
        description="起承転結を4分割で見せるベーシックなストーリーテンプレート。",
        structure="Four-panel grid, equal squares with thin gutters, small narration labels at top of each cell, consistent character pose progression.",
        use_case="テンポよく起承転結を並べたいとき",
        accent="#F59E0B",
        secondary="#F97316",
        blocks=(Block(60, 120, 280, 320, FAINT), Block(360, 120, 280, 320, FAINT), Block(60, 470, 280, 320, FAINT), Block(360, 470, 280, 320, FAINT)),
        label="4-PANEL",
        size=_MANGA_SIZE,
    ),
    LayoutTemplate(
        id="dialogue-focus",
        name="セリフ強調",
        description="セリフやナレーションを大きく載せ、感情トーンを言葉で引っ張る型。吹き出しが主役。",
        structure="Single wide panel with oversized speech bubbles, character cropped on one side, space for bold Japanese lettering.",
        use_case="決意や嘆きなど、言葉の熱量を前面に出したいとき",
        accent="#111827",
        secondary="#334155",
        blocks=(Block(80, 180, 240, 620, FAINT), Block(340, 220, 320, 200, MID, 40), Block(340, 460, 320, 200, MID, 40)),
        label="DIALOGUE",
        size=_MANGA_SIZE,
    ),
    LayoutTemplate(
        id="background-mood",
        name="背景情景",
        description="背景で時代や場所を見せ、キャラクターは小さめ。ナレーション多めで雰囲気を作る。",
        structure="Cinematic background focus, small characters in foreground silhouette, floating narration box at top and bottom.",
        use_case="時代背景や舞台転換を伝えたいシーン",
        accent="#0EA5E9",
        secondary="#7C3AED",
        blocks=(Block(60, 160, 648, 520, (255, 255, 255, 40), 30), Block(120, 140, 520, 90, SOFT, 18), Block(120, 700, 520, 90, SOFT, 18)),
        label="MOOD",
        size=_MANGA_SIZE,
    ),
)


def thumbnail_template(template_id: int) -> ThumbnailTemplate | None:
    return next((t for t in THUMBNAIL_TEMPLATES if t.id == template_id), None)


def find_layout(templates: tuple[LayoutTemplate, ...] | list[LayoutTemplate], template_id: str) -> LayoutTemplate | None:
    """Look up by id, falling back to the first template."""
    found = next((t for t in templates if t.id == template_id), None)
    if found is not None:
        return found
    return templates[0] if templates else None


def catalog() -> dict[str, list[dict[str, object]]]:
    return {
        "thumbnail": [
            {"id": t.id, "name": t.name, "structure": t.structure, "suitable_for": t.suitable_for, "prompt_focus": t.prompt_focus}
            for t in THUMBNAIL_TEMPLATES
        ],
        "slides": [{"id": t.id, "name": t.name, "structure": t.structure, "use_case": t.use_case} for t in SLIDE_TEMPLATES],
        "manga": [
            {"id": t.id, "name": t.name, "structure": t.structure, "use_case": t.use_case, "description": t.description}
            for t in MANGA_TEMPLATES
        ],
    }
