import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Sequence

from PIL import Image
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_AUTO_SHAPE_TYPE
from pptx.enum.text import MSO_ANCHOR, MSO_AUTO_SIZE
from pptx.util import Inches, Pt

from .config import PDP_FEATURES, RunConfig
from .models import FOREST, LOGISTIC

if TYPE_CHECKING:
    from .main import TalkResults

logger = logging.getLogger(__name__)

SLIDE_W = 13.333
SLIDE_H = 7.5
BAR_H = 0.95

BG = RGBColor(248, 246, 241)
TITLE_BAR = RGBColor(28, 45, 64)
TEXT = RGBColor(28, 38, 48)
MUTED = RGBColor(91, 103, 113)
ACCENT = RGBColor(217, 108, 56)


def in_to_emu(value: float) -> int:
    return int(value * 914400)


@dataclass
class Slide:
    title: str
    subtitle: Optional[str] = None
    bullets: List[str] = field(default_factory=list)
    image: Optional[str] = None
    notes: str = ""


def _fill(shape, color: RGBColor):
    shape.fill.solid()
    shape.fill.fore_color.rgb = color
    shape.line.fill.background()


def add_text(slide, left, top, width, height, text, size=18, bold=False, color=TEXT):
    box = slide.shapes.add_textbox(Inches(left), Inches(top), Inches(width), Inches(height))
    tf = box.text_frame
    tf.word_wrap = True
    tf.text = text
    for p in tf.paragraphs:
        p.font.name = "Calibri"
        p.font.size = Pt(size)
        p.font.bold = bold
        p.font.color.rgb = color
    return box


def add_bullets(slide, left, top, width, height, bullets: Sequence[str], font_size: int = 20):
    box = slide.shapes.add_textbox(Inches(left), Inches(top), Inches(width), Inches(height))
    tf = box.text_frame
    tf.clear()
    tf.word_wrap = True
    tf.vertical_anchor = MSO_ANCHOR.TOP
    tf.auto_size = MSO_AUTO_SIZE.TEXT_TO_FIT_SHAPE

    for idx, txt in enumerate(bullets):
        p = tf.paragraphs[0] if idx == 0 else tf.add_paragraph()
        p.text = f"• {txt}"
        p.font.name = "Calibri"
        p.font.size = Pt(font_size)
        p.font.color.rgb = TEXT
        p.line_spacing = 1.15
        p.space_after = Pt(8)


def add_image_contain(slide, image_path: str, left: float, top: float, width: float, height: float):
    """Place an image centred in the box, scaled to fit without distortion."""
    with Image.open(image_path) as img:
        iw, ih = img.size
    box_w = in_to_emu(width)
    box_h = in_to_emu(height)
    img_ratio = iw / ih
    box_ratio = box_w / box_h

    if img_ratio >= box_ratio:
        out_w = box_w
        out_h = int(out_w / img_ratio)
    else:
        out_h = box_h
        out_w = int(out_h * img_ratio)

    x = in_to_emu(left) + (box_w - out_w) // 2
    y = in_to_emu(top) + (box_h - out_h) // 2
    slide.shapes.add_picture(image_path, x, y, width=out_w, height=out_h)


class DeckBuilder:
    def __init__(self):
        self.prs = Presentation()
        self.prs.slide_width = Inches(SLIDE_W)
        self.prs.slide_height = Inches(SLIDE_H)
        self.slide_no = 0

    def _blank(self):
        self.slide_no += 1
        slide = self.prs.slides.add_slide(self.prs.slide_layouts[6])
        bg = slide.shapes.add_shape(MSO_AUTO_SHAPE_TYPE.RECTANGLE, 0, 0, self.prs.slide_width, self.prs.slide_height)
        _fill(bg, BG)
        return slide

    def title_slide(self, title: str, subtitle: Optional[str] = None):
        slide = self._blank()
        band = slide.shapes.add_shape(
            MSO_AUTO_SHAPE_TYPE.RECTANGLE, 0, Inches(2.4), self.prs.slide_width, Inches(2.2)
        )
        _fill(band, TITLE_BAR)
        add_text(slide, 0.8, 2.7, SLIDE_W - 1.6, 1.0, title, size=40, bold=True, color=RGBColor(255, 255, 255))
        if subtitle:
            add_text(slide, 0.8, 3.7, SLIDE_W - 1.6, 0.8, subtitle, size=18, color=RGBColor(220, 224, 228))
        return slide

    def add(self, spec: Slide):
        slide = self._blank()

        bar = slide.shapes.add_shape(MSO_AUTO_SHAPE_TYPE.RECTANGLE, 0, 0, self.prs.slide_width, Inches(BAR_H))
        _fill(bar, TITLE_BAR)
        strip = slide.shapes.add_shape(
            MSO_AUTO_SHAPE_TYPE.RECTANGLE, 0, Inches(BAR_H), self.prs.slide_width, Inches(0.06)
        )
        _fill(strip, ACCENT)
        add_text(slide, 0.45, 0.14, SLIDE_W - 1.6, 0.7, spec.title, size=28, bold=True, color=RGBColor(255, 255, 255))
        add_text(slide, SLIDE_W - 1.0, 6.95, 0.7, 0.4, str(self.slide_no), size=12, color=MUTED)

        top = BAR_H + 0.25
        if spec.subtitle:
            add_text(slide, 0.5, top, SLIDE_W - 1.0, 0.5, spec.subtitle, size=16, color=MUTED)
            top += 0.55

        content_h = SLIDE_H - top - 0.5
        if spec.image and spec.bullets:
            add_image_contain(slide, spec.image, 0.4, top, 8.4, content_h)
            add_bullets(slide, 9.0, top + 0.2, SLIDE_W - 9.4, content_h - 0.2, spec.bullets, font_size=16)
        elif spec.image:
            add_image_contain(slide, spec.image, 0.5, top, SLIDE_W - 1.0, content_h)
        else:
            add_bullets(slide, 0.7, top + 0.2, SLIDE_W - 1.4, content_h - 0.2, spec.bullets)

        if spec.notes:
            slide.notes_slide.notes_text_frame.text = spec.notes
        return slide

    def save(self, path: str) -> str:
        out_dir = os.path.dirname(path)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        self.prs.save(path)
        logger.info("Saved: %s (%d slides)", path, self.slide_no)
        return path


def build_deck(slides: Sequence[Slide], path: str, title: str, subtitle: Optional[str] = None) -> str:
    missing = [s.image for s in slides if s.image and not os.path.exists(s.image)]
    if missing:
        raise FileNotFoundError(f"Slide images not found: {missing}")

    deck = DeckBuilder()
    deck.title_slide(title, subtitle)
    for spec in slides:
        deck.add(spec)
    return deck.save(path)


def _fmt_feature_list(features) -> str:
    return ", ".join(features)


def talk_slides(results: "TalkResults", config: RunConfig) -> List[Slide]:
    """The fixed slide sequence of the talk, in presentation order."""
    figs = results.figures
    perf = results.performance.set_index("model")
    coefs = results.coefficients
    top_up = coefs[coefs["coefficient"] > 0].head(2)["feature"].tolist()
    top_down = coefs[coefs["coefficient"] < 0].head(2)["feature"].tolist()
    forest_imp = results.permutation[FOREST]
    logreg_imp = results.permutation[LOGISTIC]
    lime = results.lime
    shapley = results.shapley
    lime_top = lime.weights.iloc[0]
    shap_top = shapley.values.iloc[0]

    slides = [
        Slide(
            title=f"The data: {results.n_rows} German loan applications",
            subtitle="Target: bad credit risk (1) vs good (0)",
            image=figs["dataset"],
            bullets=[f"{col}: {desc}" for col, desc in results.descriptions.items()],
            notes=(
                f"{results.n_rows} applications, {100 * results.bad_rate:.0f}% bad risks. "
                "Categorical columns are one-hot encoded against a reference level: "
                "no checking account, car loan, unemployed."
            ),
        ),
        Slide(
            title="Two models",
            subtitle=f"Held-out test set: {len(results.split.X_test)} applications",
            image=figs["performance"],
            bullets=[
                "Logistic regression: interpretable by construction",
                f"Random forest: {config.n_estimators} trees, a black box",
                f"Test ROC AUC {perf.loc[LOGISTIC, 'roc_auc']:.2f} vs "
                f"{perf.loc[FOREST, 'roc_auc']:.2f}",
            ],
            notes="Similar accuracy; the question of the talk is how to look inside the second one.",
        ),
        Slide(
            title="Reading a linear model: coefficients",
            image=figs["coefficients"],
            bullets=[
                "Features are standardised, so bar lengths are comparable",
                f"Raise risk most: {_fmt_feature_list(top_up) or 'none'}",
                f"Lower risk most: {_fmt_feature_list(top_down) or 'none'}",
                "exp(coefficient) is an odds ratio per standard deviation",
                "Dummy coefficients are relative to the reference level",
            ],
            notes="Coefficients are global and exact for this model, but only as good as the linear form.",
        ),
        Slide(
            title="Inside the forest: one tree",
            subtitle=f"Tree 1 of {config.n_estimators}, first {config.tree_depth} levels",
            image=figs["tree"],
            notes=(
                "A single tree is readable. The forest averages hundreds of them grown on bootstrap "
                "samples, which is exactly what makes it accurate and opaque."
            ),
        ),
        Slide(
            title="Permutation importance",
            subtitle="How much worse does the model get if we shuffle one feature?",
            image=figs["permutation"],
            notes=(
                f"Top feature for the forest: {forest_imp.iloc[0]['feature']}; "
                f"for the logistic regression: {logreg_imp.iloc[0]['feature']}. "
                f"{config.n_repeats} shuffles per feature, scored by ROC AUC on the test set. "
                "Correlated features share importance, so neither can look essential on its own."
            ),
        ),
        Slide(
            title="Partial dependence",
            subtitle=f"Average prediction while sweeping {_fmt_feature_list(PDP_FEATURES)}",
            image=figs["pdp"],
            notes=(
                "The logistic regression can only draw monotone S-shapes; the forest shows steps and "
                "plateaus. PDPs average over the data and assume the swept feature is independent of the rest."
            ),
        ),
        Slide(
            title="LIME: explaining one applicant",
            subtitle=f"Test applicant #{config.instance_index}, random forest",
            image=figs["lime"],
            bullets=[
                f"Forest predicts P(bad) = {lime.predicted_proba:.2f}",
                f"Local linear surrogate predicts {lime.local_proba:.2f}",
                f"Strongest condition: {lime_top['condition']} ({lime_top['weight']:+.3f})",
                "Perturb the applicant, weight samples by proximity, fit a linear model",
            ],
            notes="LIME explanations depend on the sampling and kernel width; rerun with another seed and they move.",
        ),
        Slide(
            title="Shapley values: the same applicant",
            subtitle="TreeSHAP on the random forest",
            image=figs["shapley"],
            bullets=[
                f"Average prediction {shapley.base_value:.2f}",
                f"This applicant {shapley.predicted_proba:.2f}",
                f"Largest contribution: {shap_top['feature']} ({shap_top['shap_value']:+.3f})",
            ],
            notes="Contributions add up exactly from the average prediction to this one.",
        ),
        Slide(
            title="Shapley values: where they come from",
            bullets=[
                "Cooperative game theory: features are players, the prediction is the payout",
                "Each feature gets its average marginal contribution over all coalitions of other features",
                "Efficiency: contributions sum to prediction minus average prediction",
                "Symmetry, dummy and additivity axioms make the attribution unique",
                "Exact computation is exponential; TreeSHAP is polynomial for tree ensembles",
                "Model-agnostic estimators (KernelSHAP, sampling) trade accuracy for generality",
                "Still an attribution, not a causal effect: correlated features blur the story",
            ],
            notes="Contrast with LIME: same question, but Shapley values come with guarantees LIME lacks.",
        ),
        Slide(
            title="Takeaways",
            bullets=[
                "Interpretable models: read the parameters (coefficients, tree splits)",
                "Global, model-agnostic: permutation importance and partial dependence",
                "Local, model-agnostic: LIME and Shapley values for a single decision",
                "Every method answers a different question; pick the one that matches yours",
                "Explanations describe the model, not the world",
            ],
        ),
    ]
    return slides
