"""
Error types ของ PromptPay QR service
- 4xx: ข้อความส่งกลับให้ client ได้ตรงๆ
- 5xx: log รายละเอียดฝั่ง server แล้วตอบ client แบบกลางๆ
"""


class QrError(Exception):
    status_code = 500
    public_message = "Internal Server Error"

    def __init__(self, message=None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message

    @property
    def client_message(self):
        # ไม่ให้รายละเอียดภายในหลุดไปหา client
        if self.status_code >= 500:
            return self.public_message
        return self.message


class ValidationError(QrError):
    status_code = 400
    public_message = "Invalid request"


class Unauthorized(QrError):
    status_code = 401
    public_message = "Unauthorized"


class EncodingError(QrError):
    pass


class RenderError(QrError):
    pass


class StorageError(QrError):
    pass
