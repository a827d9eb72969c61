import base64
import logging
import concurrent.futures
from openai import OpenAI
from renshu.config import config

logger = logging.getLogger(__name__)

ANALYSIS_EMPTY = "暂时无法获取解析。"
ANALYSIS_FAILED = "解析失败，请检查网络或稍后重试。"

GRAMMAR_SYSTEM_PROMPT = "你是一个专业的日语教师，擅长深入浅出地讲解日语语法、词汇和文化背景。请使用友好且鼓励性的语气。"

class AIService:
    def __init__(self, client=None):
        self._client = client
        self.executor = concurrent.futures.ThreadPoolExecutor(max_workers=2)

    def _ensure_client(self):
        if self._client is None:
            if not config.API_KEY:
                raise RuntimeError("api_key_missing")
            self._client = OpenAI(
                base_url=config.AI_BASE_URL,
                api_key=config.API_KEY,
            )
        return self._client

    def _call_with_timeout(self, fn, timeout_s=None, **kwargs):
        fut = self.executor.submit(fn, **kwargs)
        return fut.result(timeout=timeout_s or config.AI_TIMEOUT_S)

    def get_grammar_analysis(self, jp, zh):
        prompt = f"""你是一位专业的日语老师。请分析以下对话中的句子，并用简体中文简要说明文法重点、重点单词及文化背景：
    日文句子：{jp}
    中文意思：{zh}"""
        try:
            response = self._call_with_timeout(
                self._ensure_client().chat.completions.create,
                model=config.TEXT_MODEL_ID,
                messages=[
                    {'role': 'system', 'content': GRAMMAR_SYSTEM_PROMPT},
                    {'role': 'user', 'content': prompt},
                ],
                temperature=0.7,
            )
            content = response.choices[0].message.content
            return (content or "").strip() or ANALYSIS_EMPTY
        except Exception as e:
            logger.error("Grammar analysis failed: %s", e)
            return ANALYSIS_FAILED

    def generate_speech(self, text):
        """Synthesize ``text`` and return base64 PCM16 (24 kHz mono), or None."""
        if not (text or "").strip():
            return None
        try:
            response = self._call_with_timeout(
                self._ensure_client().audio.speech.create,
                model=config.TTS_MODEL_ID,
                voice=config.TTS_VOICE,
                input=text,
                response_format="pcm",
            )
            audio = getattr(response, "content", None)
            if not audio:
                logger.warning("TTS returned no audio for %r", text[:40])
                return None
            return base64.b64encode(audio).decode("ascii")
        except Exception as e:
            logger.error("TTS failed: %s", e)
            return None

ai_service = AIService()
